# -*- coding: utf-8 -*-
# cython: language_level=3
# BSD 3-Clause License
#
# Copyright (c) 2020-2022, Faster Speeding
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
# * Redistributions of source code must retain the above copyright notice, this
#   list of conditions and the following disclaimer.
#
# * Redistributions in binary form must reproduce the above copyright notice,
#   this list of conditions and the following disclaimer in the documentation
#   and/or other materials provided with the distribution.
#
# * Neither the name of the copyright holder nor the names of its
#   contributors may be used to endorse or promote products derived from
#   this software without specific prior written permission.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE
# DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE LIABLE
# FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
# DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS OR
# SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER
# CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY,
# OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE
# OF THIS SOFTWARE, EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
from __future__ import annotations

__all__: typing.Sequence[str] = [
    "RawListenerProto",
    "as_raw_listener",
    "find_raw_listeners",
    "get_guild_id",
]

import inspect
import typing

import hikari

from . import merging

_T = typing.TypeVar("_T")
_CallbackT = typing.Callable[[_T, hikari.ShardPayloadEvent], typing.Coroutine[typing.Any, typing.Any, None]]


@typing.runtime_checkable
class RawListenerProto(typing.Protocol):
    """Protocol of a raw event listener method."""

    async def __call__(self, event: hikari.ShardPayloadEvent, /) -> None:
        raise NotImplementedError

    @property
    def __kura_event_names__(self) -> typing.Sequence[str]:
        """Sequence of the raw event names this is listening for."""
        raise NotImplementedError


def as_raw_listener(
    event_name: str, /, *event_names: str
) -> typing.Callable[[_CallbackT[_T]], _CallbackT[_T]]:
    """Mark a method as a raw event listener on the cache.

    Parameters
    ----------
    event_name : str
        Name of the raw event this is listening for.
    *event_names : str
        Names of other raw events this is listening for.

    Returns
    -------
    typing.Callable[[_CallbackT], _CallbackT]
        Decorator callback which marks the method as a raw event listener.
    """
    event_names = (event_name.upper(), *(name.upper() for name in event_names))

    def decorator(listener: _CallbackT[_T], /) -> _CallbackT[_T]:
        listener.__kura_event_names__ = event_names  # type: ignore[attr-defined]
        assert isinstance(listener, RawListenerProto), "Incorrect attributes set for raw listener"
        return listener

    return decorator


def find_raw_listeners(obj: typing.Any, /) -> typing.Dict[str, typing.List[RawListenerProto]]:
    """Find all the raw event listener methods on an object.

    Parameters
    ----------
    obj : typing.Any
        The object to find the listeners on.

    Returns
    -------
    typing.Dict[str, typing.List[RawListenerProto]]
        A dictionary of event names to the found raw event listener methods.
    """
    raw_listeners: typing.Dict[str, typing.List[RawListenerProto]] = {}
    for _, member in inspect.getmembers(obj, inspect.ismethod):
        # Runtime protocol checks don't see attributes a bound method forwards to its function.
        names: typing.Optional[typing.Sequence[str]] = getattr(member, "__kura_event_names__", None)
        if names is None:
            continue

        for name in names:
            try:
                raw_listeners[name].append(member)

            except KeyError:
                raw_listeners[name] = [member]

    return raw_listeners


def get_guild_id(payload: merging.PayloadT, /) -> typing.Optional[str]:
    """Get the guild ID a gateway payload is bound to.

    Returns
    -------
    typing.Optional[str]
        The guild ID, or `builtins.None` if the payload isn't bound to a guild.
    """
    if payload.get("guild_id") is None:
        return None

    return merging.require_id(payload, "guild_id")
