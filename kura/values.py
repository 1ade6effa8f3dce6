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
"""Lock-once value objects used to publish permission and colour state.

A value starts unlocked, may have its raw value set while unlocked and is
locked once the object graph which owns it is ready to be handed out. After
that point the public setter refuses to change it. Merge code running inside
the cache uses the internal setter, which ignores the lock state.
"""

from __future__ import annotations

__all__: typing.Sequence[str] = ["ColorValue", "LockableValue", "PermissionValue"]

import typing

import hikari

from . import errors

_LockableT = typing.TypeVar("_LockableT", bound="LockableValue")

MAX_COLOR: typing.Final[int] = 0xFFFFFF
"""The largest raw value a colour can hold (24-bit RGB)."""


class LockableValue:
    """Base class for an integer value object which can be locked against changes.

    Parameters
    ----------
    raw_value : int
        The initial raw value.
    """

    __slots__: typing.Sequence[str] = ("_is_locked", "_raw_value")

    __hash__ = None  # type: ignore[assignment]

    def __init__(self, raw_value: int = 0, /) -> None:
        self._is_locked = False
        self._raw_value = self._validate(raw_value)

    @classmethod
    def locked(cls: typing.Type[_LockableT], raw_value: int = 0, /) -> _LockableT:
        """Create a value which is locked from the start.

        Parameters
        ----------
        raw_value : int
            The raw value to lock in.

        Returns
        -------
        LockableValue
            The locked value object.
        """
        value = cls(raw_value)
        value.lock()
        return value

    def __eq__(self, other: typing.Any) -> bool:
        if type(other) is type(self):
            return self._raw_value == other._raw_value

        return NotImplemented

    def __int__(self) -> int:
        return self._raw_value

    def __repr__(self) -> str:
        state = "locked" if self._is_locked else "unlocked"
        return f"{type(self).__name__}({self._raw_value!r}, {state})"

    @property
    def is_locked(self) -> bool:
        """Whether this value has been locked against further changes."""
        return self._is_locked

    @property
    def raw_value(self) -> int:
        """The raw integer this value object wraps."""
        return self._raw_value

    def lock(self) -> None:
        """Lock this value.

        .. note::
            Locking is irreversible and calling this on an already locked
            value does nothing.
        """
        self._is_locked = True

    def set_raw_value(self, raw_value: int, /) -> None:
        """Set the raw value.

        Parameters
        ----------
        raw_value : int
            The new raw value.

        Raises
        ------
        kura.errors.LockedStateError
            If this value has already been locked.
        ValueError
            If the raw value isn't valid for this kind of value.
        """
        if self._is_locked:
            raise errors.LockedStateError(f"Cannot change the value of a locked {type(self).__name__}")

        self._raw_value = self._validate(raw_value)

    def _set_raw_value_internal(self, raw_value: int, /) -> None:
        # Only merge code may call this; it bypasses the lock.
        self._raw_value = self._validate(raw_value)

    @staticmethod
    def _validate(raw_value: int, /) -> int:
        if isinstance(raw_value, bool) or not isinstance(raw_value, int):
            raise TypeError(f"Expected an int raw value but got {type(raw_value)!r}")

        return raw_value


class PermissionValue(LockableValue):
    """A set of capabilities encoded as a permission bitfield."""

    __slots__: typing.Sequence[str] = ()

    @property
    def permissions(self) -> hikari.Permissions:
        """The permission flags this value represents."""
        return hikari.Permissions(self._raw_value)

    def has(self, permission: hikari.Permissions, /) -> bool:
        """Check whether every flag in `permission` is set in this value.

        Parameters
        ----------
        permission : hikari.Permissions
            The flag(s) to check for.

        Returns
        -------
        bool
            Whether all of the passed flags are set.
        """
        raw_permission = int(permission)
        return (self._raw_value & raw_permission) == raw_permission

    @staticmethod
    def _validate(raw_value: int, /) -> int:
        raw_value = LockableValue._validate(raw_value)
        if raw_value < 0:
            raise ValueError("A permission value cannot be negative")

        return raw_value


class ColorValue(LockableValue):
    """A display colour stored as a 24-bit RGB integer."""

    __slots__: typing.Sequence[str] = ()

    @property
    def color(self) -> hikari.Color:
        """The colour this value represents."""
        return hikari.Color(self._raw_value)

    @staticmethod
    def _validate(raw_value: int, /) -> int:
        raw_value = LockableValue._validate(raw_value)
        if not 0 <= raw_value <= MAX_COLOR:
            raise ValueError(f"A colour must be between 0 and {MAX_COLOR:#08x}, not {raw_value}")

        return raw_value
