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
"""Cached servers, the owners of every role, member and channel registry."""

from __future__ import annotations

__all__: typing.Sequence[str] = ["Server", "get_user_id"]

import logging
import typing
from collections import abc as collections

import hikari

from . import channels
from . import errors
from . import members
from . import merging
from . import registry
from . import roles

if typing.TYPE_CHECKING:
    from . import traits

_LOGGER: typing.Final[logging.Logger] = logging.getLogger("hikari.kura.servers")

_SERVER_MERGER: typing.Final[merging.UpdateMerger] = merging.UpdateMerger(
    merging.Field("name", "_name", converter=merging.to_str),
    merging.Field("owner_id", "_owner_id", converter=merging.to_id, nullable=True),
    merging.Field("unavailable", "_is_unavailable", converter=merging.to_bool),
)


def _get_list(payload: merging.PayloadT, key: str, /) -> hikari.UndefinedOr[typing.Sequence[merging.PayloadT]]:
    value = merging.get_field(payload, key)
    if value is hikari.UNDEFINED:
        return value

    if not isinstance(value, (list, tuple)):
        raise errors.InvalidDataFound(f"Field {key!r} must be a list, not {type(value)!r}")

    return value


def get_user_id(payload: merging.PayloadT, /) -> str:
    """Get the user ID of a member payload.

    This accepts both the flat `"user_id"` form and the nested
    `{"user": {"id": ...}}` form.

    Raises
    ------
    kura.errors.InvalidDataFound
        If the payload has no valid user ID.
    """
    if "user_id" in payload:
        return merging.require_id(payload, "user_id")

    user = payload.get("user")
    if not isinstance(user, collections.Mapping):
        raise errors.InvalidDataFound("Member payload is missing the user ID")

    return merging.require_id(user)


class Server:
    """A cached server and the registries of the entities it owns.

    Parameters
    ----------
    lookup : kura.traits.EntityLookup
        The cache this server's entities resolve back-references through.
    server_id : str
        ID of the server.
    """

    __slots__: typing.Sequence[str] = (
        "_channels",
        "_id",
        "_is_unavailable",
        "_lookup",
        "_members",
        "_name",
        "_owner_id",
        "_role_index",
        "_role_order",
        "_roles",
        "_user_index",
    )

    def __init__(self, lookup: traits.EntityLookup, server_id: str, /) -> None:
        self._lookup = lookup
        self._id = server_id
        self._name: typing.Optional[str] = None
        self._owner_id: typing.Optional[str] = None
        self._is_unavailable = False
        self._roles: registry.EntityRegistry[str, roles.Role] = registry.EntityRegistry(f"roles:{server_id}")
        self._members: registry.EntityRegistry[str, members.Member] = registry.EntityRegistry(f"members:{server_id}")
        self._channels: registry.EntityRegistry[str, channels.Channel] = registry.EntityRegistry(
            f"channels:{server_id}"
        )
        self._role_index: typing.Set[str] = set()
        self._role_order: typing.Optional[typing.Tuple[str, ...]] = None
        # dict keeps join order.
        self._user_index: typing.Dict[str, None] = {}

    def __repr__(self) -> str:
        return f"Server(id={self._id!r}, name={self._name!r}, roles={len(self._roles)}, members={len(self._members)})"

    def __str__(self) -> str:
        return self._name or ""

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> typing.Optional[str]:
        """Name of the server, `builtins.None` until known."""
        return self._name

    @property
    def owner_id(self) -> typing.Optional[str]:
        return self._owner_id

    @property
    def is_unavailable(self) -> bool:
        """Whether the server is currently unavailable due to an outage."""
        return self._is_unavailable

    @property
    def roles(self) -> registry.EntityRegistry[str, roles.Role]:
        """Registry of this server's cached roles."""
        return self._roles

    @property
    def members(self) -> registry.EntityRegistry[str, members.Member]:
        """Registry of this server's cached members keyed by user ID."""
        return self._members

    @property
    def channels(self) -> registry.EntityRegistry[str, channels.Channel]:
        """Registry of this server's cached channels."""
        return self._channels

    @property
    def everyone_role(self) -> typing.Optional[roles.Role]:
        """The role implicitly held by every member, if it's cached."""
        return self._roles.get(self._id)

    @property
    def role_hierarchy(self) -> typing.Sequence[str]:
        """IDs of the indexed roles in ascending `(position, id)` order."""
        if self._role_order is None:
            ordered = [role for role_id in self._role_index if (role := self._roles.get(role_id)) is not None]
            ordered.sort(key=lambda role: (role.position, role.id))
            self._role_order = tuple(role.id for role in ordered)

        return self._role_order

    @property
    def user_ids(self) -> typing.Sequence[str]:
        """IDs of the cached members in the order they were cached."""
        return tuple(self._user_index)

    @property
    def member_count(self) -> int:
        return len(self._user_index)

    def index_role(self, role_id: str, /) -> None:
        """Add a role to this server's hierarchy index.

        .. note::
            This is called by `kura.roles.Role.on_cached`.
        """
        self._role_index.add(role_id)
        self._role_order = None

    def unindex_role(self, role_id: str, /) -> None:
        """Remove a role from this server's hierarchy index."""
        self._role_index.discard(role_id)
        self._role_order = None

    def reorder_roles(self) -> None:
        """Mark the hierarchy as needing to be re-sorted after a role moved."""
        self._role_order = None

    def index_member(self, user_id: str, /) -> None:
        """Add a member to this server's member index.

        .. note::
            This is called by `kura.members.Member.on_cached`.
        """
        self._user_index[user_id] = None

    def unindex_member(self, user_id: str, /) -> None:
        """Remove a member from this server's member index."""
        self._user_index.pop(user_id, None)

    def on_cached(self) -> None:
        # <<Inherited docstring from kura.traits.CacheAware>>
        return None

    def on_uncached(self) -> None:
        # <<Inherited docstring from kura.traits.CacheAware>>
        self.clear()

    def clear(self) -> None:
        """Evict every channel, member and role this server owns."""
        self._channels.clear()
        self._members.clear()
        self._roles.clear()
        self._role_index.clear()
        self._role_order = None
        self._user_index.clear()
        _LOGGER.debug("cleared entities of server %s", self._id)

    def get_or_create_role(self, role_id: str, /) -> roles.Role:
        """Get a cached role, constructing a blank one if it's not cached yet.

        Parameters
        ----------
        role_id : str
            ID of the role.

        Returns
        -------
        kura.roles.Role
            The cached role.
        """
        return self._roles.get_or_create(role_id, lambda: roles.Role(self._lookup, self._id, role_id))

    def upsert_role(self, role_id: str, payload: merging.PayloadT, /) -> roles.Role:
        """Merge a partial update payload into a role, caching it if needed.

        Parameters
        ----------
        role_id : str
            ID of the role.
        payload : kura.merging.PayloadT
            The partial role payload.

        Returns
        -------
        kura.roles.Role
            The updated role.
        """
        role = self.get_or_create_role(role_id)
        role.update(payload)
        return role

    def remove_role(self, role_id: str, /) -> typing.Optional[roles.Role]:
        """Evict a role.

        Members which held the role keep its ID in their role set but
        have their effective permissions recomputed without it.

        Parameters
        ----------
        role_id : str
            ID of the role.

        Returns
        -------
        typing.Optional[kura.roles.Role]
            The evicted role if it was cached, else `builtins.None`.
        """
        role = self._roles.get(role_id)
        if role is None:
            return None

        holders = [member for member in self._members.values() if member.has_role(role_id)]
        self._roles.remove(role_id)
        # The hook may have been skipped if this server's no longer cached.
        self.unindex_role(role_id)
        merging.refresh_permissions(holders)
        _LOGGER.debug("evicted role %s from server %s, refreshed %s members", role_id, self._id, len(holders))
        return role

    def upsert_member(self, user_id: str, payload: merging.PayloadT, /) -> members.Member:
        """Merge a partial update payload into a member, caching it if needed.

        Parameters
        ----------
        user_id : str
            ID of the member's user.
        payload : kura.merging.PayloadT
            The partial member payload.

        Returns
        -------
        kura.members.Member
            The updated member.
        """
        member = self._members.get_or_create(user_id, lambda: members.Member(self._lookup, self._id, user_id))
        member.update(payload)
        return member

    def remove_member(self, user_id: str, /) -> typing.Optional[members.Member]:
        """Evict a member.

        Returns
        -------
        typing.Optional[kura.members.Member]
            The evicted member if it was cached, else `builtins.None`.
        """
        member = self._members.remove(user_id)
        self.unindex_member(user_id)
        return member

    def upsert_channel(self, channel_id: str, payload: merging.PayloadT, /) -> channels.Channel:
        """Merge a partial update payload into a channel, caching it if needed."""
        channel = self._channels.get_or_create(
            channel_id, lambda: channels.Channel(self._lookup, self._id, channel_id)
        )
        channel.update(payload)
        return channel

    def remove_channel(self, channel_id: str, /) -> typing.Optional[channels.Channel]:
        """Evict a channel."""
        return self._channels.remove(channel_id)

    def update(self, payload: merging.PayloadT, /) -> typing.Set[str]:
        """Merge a partial update payload into this server.

        A present `"roles"` list is treated as the server's full role list:
        every entry is merged and cached roles missing from it are evicted.
        Present `"members"` and `"channels"` lists are merged entry by entry
        without evicting anything, as these may be partial.

        Parameters
        ----------
        payload : kura.merging.PayloadT
            The partial server payload. Recognised keys are `"name"`,
            `"owner_id"` (which may be `builtins.None`), `"unavailable"`,
            `"roles"`, `"members"` and `"channels"`.

        Returns
        -------
        typing.Set[str]
            The payload keys which were present and changed something. A list
            key is included when an entry was cached, evicted or changed.

        Raises
        ------
        kura.errors.InvalidDataFound
            If a present field or list entry has an unusable value.
        """
        changed = _SERVER_MERGER.merge(self, payload)

        if (role_payloads := _get_list(payload, "roles")) is not hikari.UNDEFINED:
            role_ids = [merging.require_id(role_payload) for role_payload in role_payloads]
            removed_ids = set(self._roles.keys()).difference(role_ids)
            if removed_ids:
                changed.add("roles")

            for role_id in removed_ids:
                self.remove_role(role_id)

            for role_id, role_payload in zip(role_ids, role_payloads):
                is_new = role_id not in self._roles
                if self.get_or_create_role(role_id).update(role_payload) or is_new:
                    changed.add("roles")

        if (member_payloads := _get_list(payload, "members")) is not hikari.UNDEFINED:
            for member_payload in member_payloads:
                user_id = get_user_id(member_payload)
                is_new = user_id not in self._members
                member = self._members.get_or_create(
                    user_id, lambda: members.Member(self._lookup, self._id, user_id)
                )
                if member.update(member_payload) or is_new:
                    changed.add("members")

        channel_payloads = _get_list(payload, "channels")
        if channel_payloads is not hikari.UNDEFINED and self._lookup.config.get("cache_channels", True):
            for channel_payload in channel_payloads:
                channel_id = merging.require_id(channel_payload)
                is_new = channel_id not in self._channels
                channel = self._channels.get_or_create(
                    channel_id, lambda: channels.Channel(self._lookup, self._id, channel_id)
                )
                if channel.update(channel_payload) or is_new:
                    changed.add("channels")

        return changed
