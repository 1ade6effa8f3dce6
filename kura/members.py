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
"""Cached server members and their effective permissions."""

from __future__ import annotations

__all__: typing.Sequence[str] = ["Member"]

import logging
import typing

import hikari

from . import merging
from . import values

if typing.TYPE_CHECKING:
    from . import roles as roles_
    from . import servers as servers_
    from . import traits

_LOGGER: typing.Final[logging.Logger] = logging.getLogger("hikari.kura.members")

_MEMBER_MERGER: typing.Final[merging.UpdateMerger] = merging.UpdateMerger(
    merging.Field("nick", "_nickname", converter=merging.to_str, nullable=True),
    merging.Field("deaf", "_is_deaf", converter=merging.to_bool),
    merging.Field("mute", "_is_mute", converter=merging.to_bool),
    merging.Field("pending", "_is_pending", converter=merging.to_bool),
)
_ROLES_FIELD: typing.Final[merging.Field] = merging.Field("roles", converter=merging.to_id_list)


class Member:
    """A user's membership of one server.

    Parameters
    ----------
    lookup : kura.traits.EntityLookup
        The cache this member resolves its server and roles through.
    server_id : str
        ID of the server this is a member of.
    user_id : str
        ID of the member's user.
    """

    __slots__: typing.Sequence[str] = (
        "_effective_permissions",
        "_is_deaf",
        "_is_mute",
        "_is_pending",
        "_lookup",
        "_nickname",
        "_role_ids",
        "_server_id",
        "_user_id",
    )

    def __init__(self, lookup: traits.EntityLookup, server_id: str, user_id: str, /) -> None:
        self._lookup = lookup
        self._server_id = server_id
        self._user_id = user_id
        self._role_ids: typing.Set[str] = set()
        self._nickname: typing.Optional[str] = None
        self._is_deaf = False
        self._is_mute = False
        self._is_pending = False
        self._effective_permissions = values.PermissionValue.locked(0)

    def __repr__(self) -> str:
        return f"Member(user_id={self._user_id!r}, server_id={self._server_id!r}, role_ids={sorted(self._role_ids)!r})"

    @property
    def user_id(self) -> str:
        """ID of the member's user."""
        return self._user_id

    @property
    def server_id(self) -> str:
        """ID of the server this is a member of."""
        return self._server_id

    @property
    def server(self) -> typing.Optional[servers_.Server]:
        """The server this is a member of, if it's still cached."""
        return self._lookup.get_server(self._server_id)

    @property
    def nickname(self) -> typing.Optional[str]:
        """The member's nickname, if set."""
        return self._nickname

    @property
    def is_deaf(self) -> bool:
        return self._is_deaf

    @property
    def is_mute(self) -> bool:
        return self._is_mute

    @property
    def is_pending(self) -> bool:
        """Whether the member hasn't passed the server's membership screening yet."""
        return self._is_pending

    @property
    def mention(self) -> str:
        """Mention string for this member."""
        return f"<@{self._user_id}>"

    @property
    def role_ids(self) -> typing.FrozenSet[str]:
        """IDs of the roles explicitly held by this member.

        .. note::
            This doesn't include the everyone role and may include IDs of
            roles which are no longer cached.
        """
        return frozenset(self._role_ids)

    @property
    def roles(self) -> typing.List[roles_.Role]:
        """The cached roles held by this member in ascending hierarchy order.

        IDs which don't resolve to a cached role are skipped.
        """
        if (server := self.server) is None:
            return []

        return [
            role
            for role_id in server.role_hierarchy
            if role_id in self._role_ids and (role := server.roles.get(role_id)) is not None
        ]

    @property
    def effective_permissions(self) -> values.PermissionValue:
        """The member's last computed server-wide permissions.

        .. note::
            This snapshot is locked and never changes; recomputing the
            member's permissions publishes a new snapshot.
        """
        return self._effective_permissions

    def has_role(self, role_id: str, /) -> bool:
        """Whether this member holds a role, the everyone role always counting."""
        return role_id == self._server_id or role_id in self._role_ids

    def has_permission(self, permission: hikari.Permissions, /) -> bool:
        """Whether the member's effective permissions include every flag in `permission`."""
        return self._effective_permissions.has(permission)

    def on_cached(self) -> None:
        # <<Inherited docstring from kura.traits.CacheAware>>
        if (server := self.server) is not None:
            server.index_member(self._user_id)

    def on_uncached(self) -> None:
        # <<Inherited docstring from kura.traits.CacheAware>>
        if (server := self.server) is not None:
            server.unindex_member(self._user_id)

    def update(self, payload: merging.PayloadT, /) -> typing.Set[str]:
        """Merge a partial update payload into this member.

        A present `"roles"` field replaces the member's whole role set. The
        member's effective permissions are recomputed before this returns.

        Parameters
        ----------
        payload : kura.merging.PayloadT
            The partial member payload. Recognised keys are `"nick"` (which may
            be `builtins.None` to clear it), `"deaf"`, `"mute"`, `"pending"`
            and `"roles"`.

        Returns
        -------
        typing.Set[str]
            The payload keys of the fields which changed.

        Raises
        ------
        kura.errors.InvalidDataFound
            If a present field has an unusable value.
        """
        changed = _MEMBER_MERGER.merge(self, payload)
        if (raw_role_ids := merging.get_field(payload, _ROLES_FIELD.key)) is not hikari.UNDEFINED:
            role_ids = set(_ROLES_FIELD.convert(raw_role_ids))
            self._reference_roles(role_ids)
            if role_ids != self._role_ids:
                self._role_ids = role_ids
                changed.add(_ROLES_FIELD.key)

        self.update_permissions()
        return changed

    def _reference_roles(self, role_ids: typing.Iterable[str], /) -> None:
        if not self._lookup.config.get("lazy_roles", True) or (server := self.server) is None:
            return

        for role_id in role_ids:
            server.get_or_create_role(role_id)

    def update_permissions(self) -> values.PermissionValue:
        """Recompute and publish this member's effective permissions.

        The everyone role and each held role are folded in ascending
        hierarchy order, each role first clearing the flags it denies then
        adding the flags it grants, so higher roles take precedence. Held IDs
        which don't resolve to a cached role are skipped.

        Returns
        -------
        kura.values.PermissionValue
            The newly published, locked snapshot.
        """
        raw_permissions = 0
        if (server := self.server) is not None:
            for role_id in server.role_hierarchy:
                if not self.has_role(role_id) or (role := server.roles.get(role_id)) is None:
                    continue

                raw_permissions = (raw_permissions & ~role.denied_permissions.raw_value) | role.permissions.raw_value

        snapshot = values.PermissionValue.locked(raw_permissions)
        self._effective_permissions = snapshot
        return snapshot

    def permissions_in(self, channel_id: str, /) -> values.PermissionValue:
        """Compute this member's permissions in one of the server's channels.

        The channel's permission overwrites are applied on top of the member's
        effective permissions. This is computed on every call.

        Parameters
        ----------
        channel_id : str
            ID of the channel.

        Returns
        -------
        kura.values.PermissionValue
            A locked value of the member's permissions in the channel.

            If the channel isn't cached then this is the member's effective
            permissions.
        """
        base = self._effective_permissions.raw_value
        if (server := self.server) is None or (channel := server.channels.get(channel_id)) is None:
            return values.PermissionValue.locked(base)

        return values.PermissionValue.locked(channel.apply_overwrites(base, self._user_id, self._role_ids))
