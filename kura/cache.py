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
"""The in-memory entity cache which owns every cached server."""

from __future__ import annotations

__all__: typing.Sequence[str] = ["EntityCache", "EntityKind"]

import enum
import logging
import threading
import typing
from collections import abc as collections

import hikari

from . import errors
from . import merging
from . import registry
from . import servers
from . import utility
from . import views

if typing.TYPE_CHECKING:
    from . import channels as channels_
    from . import members as members_
    from . import roles as roles_
    from . import values

_LOGGER: typing.Final[logging.Logger] = logging.getLogger("hikari.kura")
"""Type-Hint The logger instance used by the entity cache."""
_CacheT = typing.TypeVar("_CacheT", bound="EntityCache")
_EntityT = typing.Union["servers.Server", "roles_.Role", "members_.Member", "channels_.Channel"]


class EntityKind(enum.IntEnum):
    """An enum of the kinds of entity updates and removals can target."""

    SERVER = 0
    ROLE = 1
    MEMBER = 2
    CHANNEL = 3


class EntityCache:
    """An in-memory cache of servers and the roles, members and channels they own.

    Every mutating call is serialised through one re-entrant lock, so updates
    are applied one at a time in the order they're received.

    Parameters
    ----------
    event_manager : typing.Optional[hikari.api.EventManager]
        The event manager to bind this cache to.

        If provided then `EntityCache.subscribe_listeners` will keep this cache
        up to date from received gateway events.

    Other Parameters
    ----------------
    config : typing.Optional[typing.MutableMapping[str, typing.Any]]
        Initial settings for this cache.

        See the `with_*` methods for the supported keys.
    """

    __slots__: typing.Sequence[str] = (
        "__config",
        "__event_manager",
        "__lock",
        "__raw_listeners",
        "__servers",
        "__subscribed",
    )

    def __init__(
        self,
        event_manager: typing.Optional[hikari.api.EventManager] = None,
        *,
        config: typing.Optional[typing.MutableMapping[str, typing.Any]] = None,
    ) -> None:
        self.__config: typing.MutableMapping[str, typing.Any] = config if config is not None else {}
        self.__event_manager = event_manager
        self.__lock = threading.RLock()
        self.__servers: registry.EntityRegistry[str, servers.Server] = registry.EntityRegistry("servers")
        self.__subscribed = False
        self.__raw_listeners = utility.find_raw_listeners(self)

    def __repr__(self) -> str:
        return f"EntityCache(servers={len(self.__servers)})"

    @property
    def config(self) -> typing.MutableMapping[str, typing.Any]:
        """This cache's settings."""
        return self.__config

    @property
    def event_manager(self) -> typing.Optional[hikari.api.EventManager]:
        """The event manager this cache is bound to, if set."""
        return self.__event_manager

    @property
    def is_subscribed(self) -> bool:
        """Whether this cache's gateway listeners are currently registered."""
        return self.__subscribed

    def with_implicit_servers(self: _CacheT, value: bool, /) -> _CacheT:
        """Set whether updates for an uncached server should cache it.

        When disabled, role, member and channel updates for servers which
        aren't cached are dropped. This is enabled by default.

        Returns
        -------
        EntityCache
            The cache to allow chaining.
        """
        self.__config["implicit_servers"] = value
        return self

    def with_lazy_roles(self: _CacheT, value: bool, /) -> _CacheT:
        """Set whether a member referencing an uncached role should cache a blank role.

        This is enabled by default.

        Returns
        -------
        EntityCache
            The cache to allow chaining.
        """
        self.__config["lazy_roles"] = value
        return self

    def with_channels(self: _CacheT, value: bool, /) -> _CacheT:
        """Set whether channels should be cached.

        This is enabled by default.

        Returns
        -------
        EntityCache
            The cache to allow chaining.
        """
        self.__config["cache_channels"] = value
        return self

    def __resolve_server(self, server_id: str, /) -> typing.Optional[servers.Server]:
        if (server := self.__servers.get(server_id)) is not None:
            return server

        if not self.__config.get("implicit_servers", True):
            _LOGGER.debug("dropping update for uncached server %s", server_id)
            return None

        return self.__servers.get_or_create(server_id, lambda: servers.Server(self, server_id))

    def get_server(self, server_id: str, /) -> typing.Optional[servers.Server]:
        # <<Inherited docstring from kura.traits.EntityLookup>>
        return self.__servers.get(server_id)

    def get_role(self, server_id: str, role_id: str, /) -> typing.Optional[roles_.Role]:
        # <<Inherited docstring from kura.traits.EntityLookup>>
        if (server := self.__servers.get(server_id)) is not None:
            return server.roles.get(role_id)

        return None

    def get_member(self, server_id: str, user_id: str, /) -> typing.Optional[members_.Member]:
        # <<Inherited docstring from kura.traits.EntityLookup>>
        if (server := self.__servers.get(server_id)) is not None:
            return server.members.get(user_id)

        return None

    def get_channel(self, server_id: str, channel_id: str, /) -> typing.Optional[channels_.Channel]:
        """Get a cached channel.

        Returns
        -------
        typing.Optional[kura.channels.Channel]
            The channel if it's cached, else `builtins.None`.
        """
        if (server := self.__servers.get(server_id)) is not None:
            return server.channels.get(channel_id)

        return None

    def get_effective_permissions(self, server_id: str, user_id: str, /) -> typing.Optional[values.PermissionValue]:
        """Get the effective permissions of a cached member.

        Returns
        -------
        typing.Optional[kura.values.PermissionValue]
            The member's locked permission snapshot if the member's cached,
            else `builtins.None`.
        """
        if (member := self.get_member(server_id, user_id)) is not None:
            return member.effective_permissions

        return None

    def iter_servers(self) -> views.CacheView[servers.Server]:
        """Get a lazy view of the cached servers."""
        return views.CacheView(lambda: iter(self.__servers.values()))

    def iter_roles_for_server(self, server_id: str, /) -> views.CacheView[roles_.Role]:
        """Get a lazy view of a server's cached roles in ascending hierarchy order."""
        return views.CacheView(lambda: self.__iter_server_roles(server_id))

    def __iter_server_roles(self, server_id: str, /) -> typing.Iterator[roles_.Role]:
        if (server := self.__servers.get(server_id)) is None:
            return

        for role_id in server.role_hierarchy:
            if (role := server.roles.get(role_id)) is not None:
                yield role

    def iter_members_for_server(self, server_id: str, /) -> views.CacheView[members_.Member]:
        """Get a lazy view of a server's cached members."""
        return views.CacheView(lambda: self.__iter_server_entries(server_id, "members"))

    def iter_channels_for_server(self, server_id: str, /) -> views.CacheView[channels_.Channel]:
        """Get a lazy view of a server's cached channels."""
        return views.CacheView(lambda: self.__iter_server_entries(server_id, "channels"))

    def __iter_server_entries(self, server_id: str, attribute: str, /) -> typing.Iterator[typing.Any]:
        if (server := self.__servers.get(server_id)) is not None:
            yield from getattr(server, attribute).values()

    def set_server(self, server_id: str, payload: merging.PayloadT, /) -> servers.Server:
        """Merge a partial server payload, caching the server if needed.

        Parameters
        ----------
        server_id : str
            ID of the server.
        payload : kura.merging.PayloadT
            The partial server payload.

        Returns
        -------
        kura.servers.Server
            The updated server.

        Raises
        ------
        kura.errors.InvalidDataFound
            If a present field has an unusable value.
        """
        with self.__lock:
            server = self.__servers.get_or_create(server_id, lambda: servers.Server(self, server_id))
            server.update(payload)
            return server

    def delete_server(self, server_id: str, /) -> typing.Optional[servers.Server]:
        """Evict a server along with every entity it owns.

        Returns
        -------
        typing.Optional[kura.servers.Server]
            The evicted server if it was cached, else `builtins.None`.
        """
        with self.__lock:
            server = self.__servers.remove(server_id)
            if server is not None:
                _LOGGER.debug("evicted server %s", server_id)

            return server

    def clear_servers(self) -> None:
        """Evict every cached server."""
        with self.__lock:
            self.__servers.clear()

    def set_role(self, server_id: str, role_id: str, payload: merging.PayloadT, /) -> typing.Optional[roles_.Role]:
        """Merge a partial role payload, caching the role if needed.

        The effective permissions of every member holding the role are
        recomputed before this returns.

        Returns
        -------
        typing.Optional[kura.roles.Role]
            The updated role, or `builtins.None` if the update was dropped
            because the server isn't cached.

        Raises
        ------
        kura.errors.InvalidDataFound
            If a present field has an unusable value.
        """
        with self.__lock:
            if (server := self.__resolve_server(server_id)) is None:
                return None

            return server.upsert_role(role_id, payload)

    def delete_role(self, role_id: str, /, *, server_id: typing.Optional[str] = None) -> typing.Optional[roles_.Role]:
        """Evict a role.

        Members which held the role keep its ID but have their effective
        permissions recomputed without it.

        Other Parameters
        ----------------
        server_id : typing.Optional[str]
            ID of the server the role belongs to.

            If left as `builtins.None` then every cached server is searched.

        Returns
        -------
        typing.Optional[kura.roles.Role]
            The evicted role if it was cached, else `builtins.None`.
        """
        with self.__lock:
            for server in self.__candidate_servers(server_id):
                if (role := server.remove_role(role_id)) is not None:
                    return role

            return None

    def set_member(
        self, server_id: str, user_id: str, payload: merging.PayloadT, /
    ) -> typing.Optional[members_.Member]:
        """Merge a partial member payload, caching the member if needed.

        Returns
        -------
        typing.Optional[kura.members.Member]
            The updated member, or `builtins.None` if the update was dropped
            because the server isn't cached.

        Raises
        ------
        kura.errors.InvalidDataFound
            If a present field has an unusable value.
        """
        with self.__lock:
            if (server := self.__resolve_server(server_id)) is None:
                return None

            return server.upsert_member(user_id, payload)

    def delete_member(self, server_id: str, user_id: str, /) -> typing.Optional[members_.Member]:
        """Evict a member.

        Returns
        -------
        typing.Optional[kura.members.Member]
            The evicted member if it was cached, else `builtins.None`.
        """
        with self.__lock:
            if (server := self.__servers.get(server_id)) is None:
                return None

            return server.remove_member(user_id)

    def add_member_role(self, server_id: str, user_id: str, role_id: str, /) -> typing.Optional[members_.Member]:
        """Add a role to a cached member's role set.

        Returns
        -------
        typing.Optional[kura.members.Member]
            The updated member, or `builtins.None` if the member isn't cached.
        """
        with self.__lock:
            if (member := self.get_member(server_id, user_id)) is None:
                return None

            member.update({"roles": [*member.role_ids, role_id]})
            return member

    def remove_member_role(
        self, server_id: str, user_id: str, role_id: str, /
    ) -> typing.Optional[members_.Member]:
        """Remove a role from a cached member's role set.

        Returns
        -------
        typing.Optional[kura.members.Member]
            The updated member, or `builtins.None` if the member isn't cached.
        """
        with self.__lock:
            if (member := self.get_member(server_id, user_id)) is None:
                return None

            member.update({"roles": [entry for entry in member.role_ids if entry != role_id]})
            return member

    def set_channel(
        self, server_id: str, channel_id: str, payload: merging.PayloadT, /
    ) -> typing.Optional[channels_.Channel]:
        """Merge a partial channel payload, caching the channel if needed.

        Returns
        -------
        typing.Optional[kura.channels.Channel]
            The updated channel, or `builtins.None` if channels aren't cached
            or the server isn't cached.

        Raises
        ------
        kura.errors.InvalidDataFound
            If a present field has an unusable value.
        """
        if not self.__config.get("cache_channels", True):
            return None

        with self.__lock:
            if (server := self.__resolve_server(server_id)) is None:
                return None

            return server.upsert_channel(channel_id, payload)

    def delete_channel(
        self, channel_id: str, /, *, server_id: typing.Optional[str] = None
    ) -> typing.Optional[channels_.Channel]:
        """Evict a channel.

        Other Parameters
        ----------------
        server_id : typing.Optional[str]
            ID of the server the channel belongs to.

            If left as `builtins.None` then every cached server is searched.

        Returns
        -------
        typing.Optional[kura.channels.Channel]
            The evicted channel if it was cached, else `builtins.None`.
        """
        with self.__lock:
            for server in self.__candidate_servers(server_id):
                if (channel := server.remove_channel(channel_id)) is not None:
                    return channel

            return None

    def __candidate_servers(self, server_id: typing.Optional[str], /) -> typing.List[servers.Server]:
        if server_id is None:
            return self.__servers.values()

        server = self.__servers.get(server_id)
        return [server] if server is not None else []

    def apply_update(
        self,
        kind: EntityKind,
        entity_id: str,
        payload: merging.PayloadT,
        /,
        *,
        server_id: typing.Optional[str] = None,
    ) -> typing.Optional[_EntityT]:
        """Apply an update event from the transport layer.

        Parameters
        ----------
        kind : EntityKind
            The kind of entity being updated.
        entity_id : str
            ID of the entity (the user ID for members).
        payload : kura.merging.PayloadT
            The partial update payload.

        Other Parameters
        ----------------
        server_id : typing.Optional[str]
            ID of the server the entity belongs to.

            This is required for every kind other than `EntityKind.SERVER`.

        Returns
        -------
        typing.Optional[typing.Union[kura.servers.Server, kura.roles.Role, kura.members.Member, kura.channels.Channel]]
            The updated entity, or `builtins.None` if the update was dropped.

        Raises
        ------
        ValueError
            If `server_id` is missing for an entity kind which needs it.
        kura.errors.InvalidDataFound
            If a present field has an unusable value.
        """
        if kind is EntityKind.SERVER:
            return self.set_server(entity_id, payload)

        if server_id is None:
            raise ValueError(f"A server ID is required to update a {kind.name.lower()}")

        if kind is EntityKind.ROLE:
            return self.set_role(server_id, entity_id, payload)

        if kind is EntityKind.MEMBER:
            return self.set_member(server_id, entity_id, payload)

        if kind is EntityKind.CHANNEL:
            return self.set_channel(server_id, entity_id, payload)

        raise ValueError(f"Unknown entity kind {kind!r}")

    def apply_removal(
        self, kind: EntityKind, entity_id: str, /, *, server_id: typing.Optional[str] = None
    ) -> typing.Optional[_EntityT]:
        """Apply a removal event from the transport layer.

        Parameters
        ----------
        kind : EntityKind
            The kind of entity being removed.
        entity_id : str
            ID of the entity (the user ID for members).

        Other Parameters
        ----------------
        server_id : typing.Optional[str]
            ID of the server the entity belongs to.

            Roles and channels are searched for in every cached server when
            this is left as `builtins.None`; it's required for members.

        Returns
        -------
        typing.Optional[typing.Union[kura.servers.Server, kura.roles.Role, kura.members.Member, kura.channels.Channel]]
            The evicted entity if it was cached, else `builtins.None`.

        Raises
        ------
        ValueError
            If `server_id` is missing when removing a member.
        """
        if kind is EntityKind.SERVER:
            return self.delete_server(entity_id)

        if kind is EntityKind.ROLE:
            return self.delete_role(entity_id, server_id=server_id)

        if kind is EntityKind.CHANNEL:
            return self.delete_channel(entity_id, server_id=server_id)

        if kind is EntityKind.MEMBER:
            if server_id is None:
                raise ValueError("A server ID is required to remove a member")

            return self.delete_member(server_id, entity_id)

        raise ValueError(f"Unknown entity kind {kind!r}")

    def subscribe_listeners(self) -> None:
        """Register this cache's gateway listeners to the bound event manager.

        .. note::
            If no event manager was provided during initialisation, or the
            listeners are already registered, then this does nothing.
        """
        if self.__event_manager is None or self.__subscribed:
            return

        self.__event_manager.subscribe(hikari.ShardPayloadEvent, self.__on_shard_payload_event)
        self.__subscribed = True

    def unsubscribe_listeners(self) -> None:
        """Unregister this cache's gateway listeners from the bound event manager.

        .. note::
            If the listeners aren't registered then this does nothing.
        """
        if self.__event_manager is None or not self.__subscribed:
            return

        self.__subscribed = False
        try:
            self.__event_manager.unsubscribe(hikari.ShardPayloadEvent, self.__on_shard_payload_event)

        except LookupError:
            pass

    async def __on_shard_payload_event(self, event: hikari.ShardPayloadEvent, /) -> None:
        # These run one after the other to keep updates in arrival order.
        for listener in self.__raw_listeners.get(event.name.upper(), ()):
            await listener(event)

    @utility.as_raw_listener("GUILD_CREATE", "GUILD_UPDATE")
    async def __on_guild_create_update(self, event: hikari.ShardPayloadEvent, /) -> None:
        self.set_server(merging.require_id(event.payload), event.payload)

    @utility.as_raw_listener("GUILD_DELETE")
    async def __on_guild_delete(self, event: hikari.ShardPayloadEvent, /) -> None:
        server_id = merging.require_id(event.payload)
        if event.payload.get("unavailable"):
            if server_id in self.__servers:
                self.set_server(server_id, {"unavailable": True})

        else:
            self.delete_server(server_id)

    @utility.as_raw_listener("GUILD_ROLE_CREATE", "GUILD_ROLE_UPDATE")
    async def __on_guild_role_create_update(self, event: hikari.ShardPayloadEvent, /) -> None:
        role = event.payload.get("role")
        if not isinstance(role, collections.Mapping):
            raise errors.InvalidDataFound(f"{event.name} payload is missing the role")

        self.set_role(merging.require_id(event.payload, "guild_id"), merging.require_id(role), role)

    @utility.as_raw_listener("GUILD_ROLE_DELETE")
    async def __on_guild_role_delete(self, event: hikari.ShardPayloadEvent, /) -> None:
        self.delete_role(merging.require_id(event.payload, "role_id"), server_id=utility.get_guild_id(event.payload))

    @utility.as_raw_listener("GUILD_MEMBER_ADD", "GUILD_MEMBER_UPDATE")
    async def __on_guild_member_add_update(self, event: hikari.ShardPayloadEvent, /) -> None:
        self.set_member(
            merging.require_id(event.payload, "guild_id"), servers.get_user_id(event.payload), event.payload
        )

    @utility.as_raw_listener("GUILD_MEMBER_REMOVE")
    async def __on_guild_member_remove(self, event: hikari.ShardPayloadEvent, /) -> None:
        self.delete_member(merging.require_id(event.payload, "guild_id"), servers.get_user_id(event.payload))

    @utility.as_raw_listener("GUILD_MEMBERS_CHUNK")
    async def __on_guild_members_chunk(self, event: hikari.ShardPayloadEvent, /) -> None:
        server_id = merging.require_id(event.payload, "guild_id")
        with self.__lock:
            if (server := self.__resolve_server(server_id)) is not None:
                server.update({"members": event.payload.get("members", [])})

    @utility.as_raw_listener("CHANNEL_CREATE", "CHANNEL_UPDATE")
    async def __on_channel_create_update(self, event: hikari.ShardPayloadEvent, /) -> None:
        # DM channels aren't bound to a server.
        if (server_id := utility.get_guild_id(event.payload)) is not None:
            self.set_channel(server_id, merging.require_id(event.payload), event.payload)

    @utility.as_raw_listener("CHANNEL_DELETE")
    async def __on_channel_delete(self, event: hikari.ShardPayloadEvent, /) -> None:
        self.delete_channel(merging.require_id(event.payload), server_id=utility.get_guild_id(event.payload))
