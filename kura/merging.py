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
"""The partial update protocol used to merge update payloads into cached entities.

An update payload is a mapping in which every field is either absent (the
key is missing) or present, where a present value may be `builtins.None` for
fields which can be cleared. Absent fields always leave the target untouched.
"""

from __future__ import annotations

__all__: typing.Sequence[str] = [
    "Field",
    "PayloadT",
    "UpdateMerger",
    "get_field",
    "refresh_permissions",
    "require_id",
    "to_bool",
    "to_id",
    "to_id_list",
    "to_int",
    "to_str",
]

import logging
import typing
from collections import abc as collections

import hikari

from . import errors

if typing.TYPE_CHECKING:
    from . import members as members_

PayloadT = typing.Mapping[str, typing.Any]
"""Type-Hint of a partial update payload."""

_LOGGER: typing.Final[logging.Logger] = logging.getLogger("hikari.kura.merging")


def get_field(payload: PayloadT, key: str, /) -> hikari.UndefinedOr[typing.Any]:
    """Get a field from an update payload.

    Parameters
    ----------
    payload : PayloadT
        The update payload.
    key : str
        Key of the field.

    Returns
    -------
    hikari.UndefinedOr[typing.Any]
        The field's value (which may be `builtins.None`) if present, else
        `hikari.UNDEFINED`.
    """
    return payload.get(key, hikari.UNDEFINED)


def require_id(payload: PayloadT, key: str = "id", /) -> str:
    """Get a required ID field from a payload.

    Parameters
    ----------
    payload : PayloadT
        The payload to get the ID from.
    key : str
        Key of the ID field.

    Returns
    -------
    str
        The normalised ID.

    Raises
    ------
    kura.errors.InvalidDataFound
        If the field is missing, null or not a valid ID.
    """
    try:
        return to_id(payload[key])

    except KeyError:
        raise errors.InvalidDataFound(f"Payload is missing the {key!r} field") from None

    except (TypeError, ValueError) as exc:
        raise errors.InvalidDataFound(f"Invalid value for field {key!r}: {exc}", exception=exc) from exc


def to_str(value: typing.Any, /) -> str:
    if not isinstance(value, str):
        raise TypeError(f"Expected a string but got {type(value)!r}")

    return value


def to_bool(value: typing.Any, /) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"Expected a bool but got {type(value)!r}")

    return value


def to_int(value: typing.Any, /) -> int:
    # Bitfields arrive as strings on the gateway.
    if isinstance(value, str):
        return int(value)

    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"Expected an int but got {type(value)!r}")

    return value


def to_id(value: typing.Any, /) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise TypeError(f"Expected a string or int ID but got {type(value)!r}")

    if isinstance(value, str) and not value:
        raise ValueError("An ID cannot be empty")

    return str(value)


def to_id_list(value: typing.Any, /) -> typing.List[str]:
    if isinstance(value, (str, bytes)) or not isinstance(value, collections.Iterable):
        raise TypeError(f"Expected a sequence of IDs but got {type(value)!r}")

    return [to_id(entry) for entry in value]


class Field:
    """Description of a single mergeable field.

    Parameters
    ----------
    key : str
        Key of the field in the update payload.
    attribute : typing.Optional[str]
        Name of the attribute the field is stored in on the target.

        Defaults to `key`.

    Other Parameters
    ----------------
    converter : typing.Optional[typing.Callable[[typing.Any], typing.Any]]
        Callback used to validate and convert the raw payload value.

        This may raise `builtins.TypeError` or `builtins.ValueError` to reject
        the value.
    nullable : bool
        Whether a present `builtins.None` is a valid value which clears the field.
    value_object : bool
        Whether the attribute holds a `kura.values.LockableValue` whose raw
        value should be replaced in place rather than reassigning the attribute.
    """

    __slots__: typing.Sequence[str] = ("attribute", "converter", "key", "nullable", "value_object")

    def __init__(
        self,
        key: str,
        attribute: typing.Optional[str] = None,
        /,
        *,
        converter: typing.Optional[typing.Callable[[typing.Any], typing.Any]] = None,
        nullable: bool = False,
        value_object: bool = False,
    ) -> None:
        self.attribute = attribute or key
        self.converter = converter
        self.key = key
        self.nullable = nullable
        self.value_object = value_object

    def __repr__(self) -> str:
        return f"Field({self.key!r}, {self.attribute!r})"

    def read(self, target: typing.Any, /) -> typing.Any:
        value = getattr(target, self.attribute)
        if self.value_object:
            return value.raw_value

        return value

    def write(self, target: typing.Any, value: typing.Any, /) -> None:
        if self.value_object:
            getattr(target, self.attribute)._set_raw_value_internal(value)

        else:
            setattr(target, self.attribute, value)

    def convert(self, value: typing.Any, /) -> typing.Any:
        if value is None:
            if not self.nullable:
                raise errors.InvalidDataFound(f"Field {self.key!r} cannot be null")

            return None

        if self.converter is None:
            return value

        try:
            return self.converter(value)

        except (TypeError, ValueError) as exc:
            raise errors.InvalidDataFound(f"Invalid value for field {self.key!r}: {exc}", exception=exc) from exc


class UpdateMerger:
    """Merges the fields present in an update payload into a target entity.

    Parameters
    ----------
    *fields : Field
        The fields this merger handles.
    """

    __slots__: typing.Sequence[str] = ("_fields",)

    def __init__(self, *fields: Field) -> None:
        self._fields = fields

    @property
    def fields(self) -> typing.Sequence[Field]:
        """The fields this merger handles."""
        return self._fields

    def merge(
        self, target: typing.Any, payload: PayloadT, /, *, skip: typing.Collection[str] = ()
    ) -> typing.Set[str]:
        """Merge a payload into a target.

        Parameters
        ----------
        target
            The entity to update.
        payload : PayloadT
            The partial update payload.

        Other Parameters
        ----------------
        skip : typing.Collection[str]
            Payload keys which should never be merged for this target, even
            when present in the payload.

        Returns
        -------
        typing.Set[str]
            The payload keys of the fields whose value changed.

        Raises
        ------
        kura.errors.InvalidDataFound
            If a present field has a value which couldn't be used.

            Fields before the invalid one will already have been merged.
        """
        changed: typing.Set[str] = set()
        for field in self._fields:
            if field.key in skip or (raw_value := get_field(payload, field.key)) is hikari.UNDEFINED:
                continue

            value = field.convert(raw_value)
            if field.read(target) == value:
                continue

            try:
                field.write(target, value)

            except (TypeError, ValueError) as exc:
                raise errors.InvalidDataFound(
                    f"Invalid value for field {field.key!r}: {exc}", exception=exc
                ) from exc

            changed.add(field.key)

        return changed


def refresh_permissions(members: typing.Iterable[members_.Member], /) -> int:
    """Recompute the effective permissions of each of the passed members.

    .. note::
        This never raises for a member's recomputation failing; the failure is
        logged and the rest of the members are still refreshed.

    Parameters
    ----------
    members : typing.Iterable[kura.members.Member]
        The members to refresh.

    Returns
    -------
    int
        How many members were successfully refreshed.
    """
    count = 0
    for member in members:
        try:
            member.update_permissions()

        except Exception:
            _LOGGER.warning(
                "failed to recompute permissions for member %s in server %s",
                member.user_id,
                member.server_id,
                exc_info=True,
            )

        else:
            count += 1

    return count
