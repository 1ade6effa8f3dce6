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
"""The keyed store every cached entity collection is built on."""

from __future__ import annotations

__all__: typing.Sequence[str] = ["EntityRegistry"]

import logging
import typing

from . import errors
from . import traits

_LOGGER: typing.Final[logging.Logger] = logging.getLogger("hikari.kura.registry")
_KeyT = typing.TypeVar("_KeyT", bound=typing.Hashable)
_ValueT = typing.TypeVar("_ValueT", bound=traits.CacheAware)


class EntityRegistry(typing.Generic[_KeyT, _ValueT]):
    """A mapping of entity keys to cached entities which fires their lifecycle hooks.

    `kura.traits.CacheAware.on_cached` is called exactly once when a key is
    first inserted and `kura.traits.CacheAware.on_uncached` exactly once when
    it's removed.

    Parameters
    ----------
    name : str
        Name used to identify this registry in logs and errors.
    """

    __slots__: typing.Sequence[str] = ("_entries", "_name")

    def __init__(self, name: str = "entities", /) -> None:
        self._entries: typing.Dict[_KeyT, _ValueT] = {}
        self._name = name

    def __contains__(self, key: typing.Any) -> bool:
        return key in self._entries

    def __iter__(self) -> typing.Iterator[_KeyT]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"EntityRegistry({self._name!r}, entries={len(self._entries)})"

    @property
    def name(self) -> str:
        """Name of this registry."""
        return self._name

    def get(self, key: _KeyT, /) -> typing.Optional[_ValueT]:
        """Get an entry.

        Parameters
        ----------
        key
            Key of the entry to get.

        Returns
        -------
        typing.Optional[_ValueT]
            The entry if found, else `builtins.None`.
        """
        return self._entries.get(key)

    def get_or_create(self, key: _KeyT, factory: typing.Callable[[], _ValueT], /) -> _ValueT:
        """Get an entry, creating and inserting it if it isn't cached yet.

        .. note::
            `factory` is only ever called when `key` is missing.

        Parameters
        ----------
        key
            Key of the entry to get.
        factory : typing.Callable[[], _ValueT]
            Callback used to construct the entry if it's missing.

        Returns
        -------
        _ValueT
            The existing or newly created entry.
        """
        try:
            return self._entries[key]

        except KeyError:
            value = factory()
            self.insert(key, value)
            return value

    def insert(self, key: _KeyT, value: _ValueT, /) -> None:
        """Insert a new entry and fire its `on_cached` hook.

        Parameters
        ----------
        key
            Key to insert the entry under.
        value
            The entry to insert.

        Raises
        ------
        kura.errors.DuplicateEntryError
            If an entry is already cached under `key`.
        """
        if key in self._entries:
            raise errors.DuplicateEntryError(f"An entry is already cached for {key!r} in {self._name}")

        self._entries[key] = value
        value.on_cached()

    def remove(self, key: _KeyT, /) -> typing.Optional[_ValueT]:
        """Remove an entry and fire its `on_uncached` hook.

        Parameters
        ----------
        key
            Key of the entry to remove.

        Returns
        -------
        typing.Optional[_ValueT]
            The removed entry if it was cached, else `builtins.None`.
        """
        value = self._entries.pop(key, None)
        if value is not None:
            value.on_uncached()

        return value

    def clear(self) -> typing.List[_ValueT]:
        """Remove every entry, firing `on_uncached` for each.

        Returns
        -------
        typing.List[_ValueT]
            The removed entries.
        """
        removed = [value for key in list(self._entries) if (value := self.remove(key)) is not None]
        if removed:
            _LOGGER.debug("cleared %s entries from %s", len(removed), self._name)

        return removed

    def keys(self) -> typing.List[_KeyT]:
        """Snapshot of the cached keys."""
        return list(self._entries.keys())

    def values(self) -> typing.List[_ValueT]:
        """Snapshot of the cached entries."""
        return list(self._entries.values())

    def items(self) -> typing.List[typing.Tuple[_KeyT, _ValueT]]:
        """Snapshot of the cached key-entry pairs."""
        return list(self._entries.items())
