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
"""The standard errors which the Kura entity cache will be raising.

.. note::
    These supplement python's builtin exceptions but do not replace them.

.. note::
    References which no longer resolve (a member holding the id of a deleted
    role, a role whose server has been evicted) are never errors; they are
    skipped.
"""

from __future__ import annotations

__all__: typing.Sequence[str] = [
    "DuplicateEntryError",
    "InvalidDataFound",
    "KuraException",
    "LockedStateError",
]

import typing


class KuraException(Exception):
    """Base exception for the expected exceptions raised by Kura.

    Parameters
    ----------
    message : str
        The exception's message.
    base : typing.Optional[Exception]
        The exception which caused this exception if applicable else `builtins.None`.
    """

    __slots__: typing.Sequence[str] = ("base_exception", "message")

    message: str
    """The exception's message, this may be an empty string if there is no message."""

    base_exception: typing.Optional[Exception]
    """The exception which caused this exception if applicable else `builtins.None`."""

    def __init__(self, message: str, *, exception: typing.Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message: str = message
        self.base_exception: typing.Optional[Exception] = exception

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"

    def __str__(self) -> str:
        return self.message


class LockedStateError(KuraException, RuntimeError):
    """Error that's raised when an attempt to change a locked value object is made.

    This should be unreachable through the public API of the cache and
    indicates that a consumer tried to mutate a snapshot it was handed.
    """

    __slots__: typing.Sequence[str] = ()


class DuplicateEntryError(KuraException, KeyError):
    """Error that's raised when an entry is inserted under a key which is already cached.

    .. note::
        Registries never silently overwrite an entry, replacing an entry
        requires removing the old one first.
    """

    __slots__: typing.Sequence[str] = ()


class InvalidDataFound(KuraException, ValueError):
    """Error that's raised when a field in an update payload is in an unexpected format.

    The entity the payload targeted may be partially updated when this is
    raised, it's up to the caller whether to drop it or request a resync.
    """

    __slots__: typing.Sequence[str] = ()
