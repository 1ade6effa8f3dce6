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
"""Cached server channels and their permission overwrites."""

from __future__ import annotations

__all__: typing.Sequence[str] = ["Channel", "Overwrite"]

import typing

import hikari

from . import errors
from . import merging
from . import values

if typing.TYPE_CHECKING:
    from . import servers as servers_
    from . import traits

_CHANNEL_MERGER: typing.Final[merging.UpdateMerger] = merging.UpdateMerger(
    merging.Field("name", "_name", converter=merging.to_str),
    merging.Field("type", "_type", converter=merging.to_int),
    merging.Field("position", "_position", converter=merging.to_int),
    merging.Field("topic", "_topic", converter=merging.to_str, nullable=True),
    merging.Field("nsfw", "_is_nsfw", converter=merging.to_bool),
)
_OVERWRITES_KEY: typing.Final[str] = "permission_overwrites"


class Overwrite:
    """A channel-specific permission adjustment for a role or member.

    Parameters
    ----------
    target_id : str
        ID of the role or member this applies to.
    type : hikari.PermissionOverwriteType
        Whether the target is a role or a member.
    allow : int
        The raw permissions this allows.
    deny : int
        The raw permissions this denies.
    """

    __slots__: typing.Sequence[str] = ("allow", "deny", "target_id", "type")

    def __init__(self, target_id: str, type: hikari.PermissionOverwriteType, allow: int, deny: int) -> None:
        self.target_id = target_id
        self.type = type
        self.allow = values.PermissionValue.locked(allow)
        self.deny = values.PermissionValue.locked(deny)

    def __eq__(self, other: typing.Any) -> bool:
        if isinstance(other, Overwrite):
            return (self.target_id, self.type, self.allow, self.deny) == (
                other.target_id,
                other.type,
                other.allow,
                other.deny,
            )

        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"Overwrite({self.target_id!r}, {self.type!r}, allow={self.allow.raw_value}, deny={self.deny.raw_value})"
        )

    @classmethod
    def from_payload(cls, payload: merging.PayloadT, /) -> Overwrite:
        """Build an overwrite from its payload.

        Raises
        ------
        kura.errors.InvalidDataFound
            If the payload is missing a field or has an unusable value.
        """
        try:
            return cls(
                merging.to_id(payload["id"]),
                hikari.PermissionOverwriteType(merging.to_int(payload["type"])),
                merging.to_int(payload.get("allow", 0)),
                merging.to_int(payload.get("deny", 0)),
            )

        except (KeyError, TypeError, ValueError) as exc:
            raise errors.InvalidDataFound(f"Invalid permission overwrite: {exc!r}", exception=exc) from exc

    def apply(self, raw_permissions: int, /) -> int:
        """Apply this overwrite to a raw permission bitfield."""
        return (raw_permissions & ~self.deny.raw_value) | self.allow.raw_value


class Channel:
    """A channel in a server.

    Parameters
    ----------
    lookup : kura.traits.EntityLookup
        The cache this channel resolves its server through.
    server_id : str
        ID of the server this channel belongs to.
    channel_id : str
        ID of this channel.
    """

    __slots__: typing.Sequence[str] = (
        "_id",
        "_is_nsfw",
        "_lookup",
        "_name",
        "_overwrites",
        "_position",
        "_server_id",
        "_topic",
        "_type",
    )

    def __init__(self, lookup: traits.EntityLookup, server_id: str, channel_id: str, /) -> None:
        self._lookup = lookup
        self._id = channel_id
        self._server_id = server_id
        self._name: typing.Optional[str] = None
        self._type = 0
        self._position = 0
        self._topic: typing.Optional[str] = None
        self._is_nsfw = False
        self._overwrites: typing.Dict[str, Overwrite] = {}

    def __repr__(self) -> str:
        return f"Channel(id={self._id!r}, server_id={self._server_id!r}, name={self._name!r})"

    def __str__(self) -> str:
        return self._name or ""

    @property
    def id(self) -> str:
        return self._id

    @property
    def server_id(self) -> str:
        return self._server_id

    @property
    def server(self) -> typing.Optional[servers_.Server]:
        """The server this channel belongs to, if it's still cached."""
        return self._lookup.get_server(self._server_id)

    @property
    def name(self) -> typing.Optional[str]:
        return self._name

    @property
    def type(self) -> int:
        """The raw channel type."""
        return self._type

    @property
    def position(self) -> int:
        return self._position

    @property
    def topic(self) -> typing.Optional[str]:
        return self._topic

    @property
    def is_nsfw(self) -> bool:
        return self._is_nsfw

    @property
    def mention(self) -> str:
        return f"<#{self._id}>"

    @property
    def permission_overwrites(self) -> typing.Mapping[str, Overwrite]:
        """Mapping of target IDs to the permission overwrites set for them."""
        return dict(self._overwrites)

    def on_cached(self) -> None:
        # <<Inherited docstring from kura.traits.CacheAware>>
        return None

    def on_uncached(self) -> None:
        # <<Inherited docstring from kura.traits.CacheAware>>
        return None

    def update(self, payload: merging.PayloadT, /) -> typing.Set[str]:
        """Merge a partial update payload into this channel.

        A present `"permission_overwrites"` list replaces every overwrite.

        Parameters
        ----------
        payload : kura.merging.PayloadT
            The partial channel payload. Recognised keys are `"name"`,
            `"type"`, `"position"`, `"topic"` (which may be `builtins.None`),
            `"nsfw"` and `"permission_overwrites"`.

        Returns
        -------
        typing.Set[str]
            The payload keys of the fields which changed.

        Raises
        ------
        kura.errors.InvalidDataFound
            If a present field has an unusable value.
        """
        changed = _CHANNEL_MERGER.merge(self, payload)
        raw_overwrites = merging.get_field(payload, _OVERWRITES_KEY)
        if raw_overwrites is None:
            raise errors.InvalidDataFound(f"Field {_OVERWRITES_KEY!r} cannot be null")

        if raw_overwrites is not hikari.UNDEFINED:
            if not isinstance(raw_overwrites, (list, tuple)):
                raise errors.InvalidDataFound(f"Field {_OVERWRITES_KEY!r} must be a list")

            overwrites = {overwrite.target_id: overwrite for overwrite in map(Overwrite.from_payload, raw_overwrites)}
            if overwrites != self._overwrites:
                self._overwrites = overwrites
                changed.add(_OVERWRITES_KEY)

        return changed

    def apply_overwrites(self, raw_permissions: int, user_id: str, role_ids: typing.Iterable[str], /) -> int:
        """Apply this channel's overwrites to a member's server-wide permissions.

        The everyone overwrite is applied first, then the combined overwrites
        of the member's cached roles and finally the member's own overwrite.

        Parameters
        ----------
        raw_permissions : int
            The member's raw server-wide permissions.
        user_id : str
            ID of the member's user.
        role_ids : typing.Iterable[str]
            IDs of the roles the member holds.

        Returns
        -------
        int
            The member's raw permissions in this channel.
        """
        if (everyone := self._overwrites.get(self._server_id)) is not None:
            raw_permissions = everyone.apply(raw_permissions)

        server = self.server
        allow = deny = 0
        for role_id in role_ids:
            # Overwrites for evicted roles are skipped like the roles themselves.
            if role_id == self._server_id or server is None or role_id not in server.roles:
                continue

            overwrite = self._overwrites.get(role_id)
            if overwrite is not None and overwrite.type is hikari.PermissionOverwriteType.ROLE:
                allow |= overwrite.allow.raw_value
                deny |= overwrite.deny.raw_value

        raw_permissions = (raw_permissions & ~deny) | allow
        member = self._overwrites.get(user_id)
        if member is not None and member.type is hikari.PermissionOverwriteType.MEMBER:
            raw_permissions = member.apply(raw_permissions)

        return raw_permissions
