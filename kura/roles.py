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
"""Cached roles and the permission cascade triggered by updating them."""

from __future__ import annotations

__all__: typing.Sequence[str] = ["MIN_POSITION", "Role"]

import logging
import typing

import hikari

from . import merging
from . import values
from . import views

if typing.TYPE_CHECKING:
    from . import members as members_
    from . import servers as servers_
    from . import traits

_LOGGER: typing.Final[logging.Logger] = logging.getLogger("hikari.kura.roles")

MIN_POSITION: typing.Final[int] = -(2**31)
"""The fixed position of a server's everyone role, below every other role."""

_ROLE_MERGER: typing.Final[merging.UpdateMerger] = merging.UpdateMerger(
    merging.Field("name", "_name", converter=merging.to_str),
    merging.Field("hoist", "_is_hoisted", converter=merging.to_bool),
    merging.Field("managed", "_is_managed", converter=merging.to_bool),
    merging.Field("mentionable", "_is_mentionable", converter=merging.to_bool),
    merging.Field("position", "_position", converter=merging.to_int),
    merging.Field("color", "_color", converter=merging.to_int, value_object=True),
    merging.Field("permissions", "_permissions", converter=merging.to_int, value_object=True),
    merging.Field("denied_permissions", "_denied_permissions", converter=merging.to_int, value_object=True),
)


class Role:
    """A named permission grant scoped to one server.

    Parameters
    ----------
    lookup : kura.traits.EntityLookup
        The cache this role resolves its server through.
    server_id : str
        ID of the server this role belongs to.
    role_id : str
        ID of this role.
    """

    __slots__: typing.Sequence[str] = (
        "_color",
        "_denied_permissions",
        "_id",
        "_is_hoisted",
        "_is_managed",
        "_is_mentionable",
        "_lookup",
        "_name",
        "_permissions",
        "_position",
        "_server_id",
    )

    def __init__(self, lookup: traits.EntityLookup, server_id: str, role_id: str, /) -> None:
        self._lookup = lookup
        self._id = role_id
        self._server_id = server_id
        self._name: typing.Optional[str] = None
        self._is_hoisted = False
        self._is_managed = False
        self._is_mentionable = False
        self._position = MIN_POSITION if role_id == server_id else 0
        # Locked zero means "not known yet"; merges still go through the internal setter.
        self._color = values.ColorValue.locked(0)
        self._permissions = values.PermissionValue.locked(0)
        self._denied_permissions = values.PermissionValue.locked(0)

    def __repr__(self) -> str:
        return f"Role(id={self._id!r}, server_id={self._server_id!r}, name={self._name!r})"

    def __str__(self) -> str:
        return self._name or ""

    @property
    def id(self) -> str:
        """ID of this role."""
        return self._id

    @property
    def server_id(self) -> str:
        """ID of the server this role belongs to."""
        return self._server_id

    @property
    def server(self) -> typing.Optional[servers_.Server]:
        """The server this role belongs to, if it's still cached."""
        return self._lookup.get_server(self._server_id)

    @property
    def name(self) -> typing.Optional[str]:
        """Name of the role.

        This is `builtins.None` until the first update which includes it.
        """
        return self._name

    @property
    def is_hoisted(self) -> bool:
        """Whether members with this role are displayed separately."""
        return self._is_hoisted

    @property
    def is_managed(self) -> bool:
        """Whether this role is managed by an integration."""
        return self._is_managed

    @property
    def is_mentionable(self) -> bool:
        """Whether this role can be mentioned by anyone."""
        return self._is_mentionable

    @property
    def position(self) -> int:
        """Position of this role in the server's hierarchy.

        This is always `MIN_POSITION` for the everyone role.
        """
        return self._position

    @property
    def color(self) -> values.ColorValue:
        """The colour of this role."""
        return self._color

    @property
    def permissions(self) -> values.PermissionValue:
        """The permissions this role grants."""
        return self._permissions

    @property
    def denied_permissions(self) -> values.PermissionValue:
        """The permissions this role explicitly denies to lower roles' grants."""
        return self._denied_permissions

    @property
    def is_everyone(self) -> bool:
        """Whether this is the role implicitly held by every member of the server."""
        return self._id == self._server_id

    @property
    def mention(self) -> str:
        """Mention string for this role."""
        return f"<@&{self._id}>"

    @property
    def member_ids(self) -> views.CacheView[str]:
        """A lazy view of the IDs of the cached members which hold this role.

        For the everyone role this covers every cached member of the server.
        """
        return views.CacheView(self._iter_member_ids)

    @property
    def members(self) -> views.CacheView[members_.Member]:
        """A lazy view of the cached members which hold this role."""
        return views.CacheView(self._iter_members)

    def _iter_members(self) -> typing.Iterator[members_.Member]:
        if (server := self.server) is None:
            return

        if self.is_everyone:
            yield from server.members.values()
            return

        for member in server.members.values():
            if member.has_role(self._id):
                yield member

    def _iter_member_ids(self) -> typing.Iterator[str]:
        if self.is_everyone and (server := self.server) is not None:
            yield from server.user_ids
            return

        for member in self._iter_members():
            yield member.user_id

    def on_cached(self) -> None:
        # <<Inherited docstring from kura.traits.CacheAware>>
        # The server may have been evicted before this hook ran.
        if (server := self.server) is not None:
            server.index_role(self._id)

    def on_uncached(self) -> None:
        # <<Inherited docstring from kura.traits.CacheAware>>
        if (server := self.server) is not None:
            server.unindex_role(self._id)

    def update(self, payload: merging.PayloadT, /) -> typing.Set[str]:
        """Merge a partial update payload into this role.

        Once merged, the effective permissions of every cached member which
        holds this role are recomputed before this returns.

        .. note::
            The everyone role's position is never changed by an update.

        Parameters
        ----------
        payload : kura.merging.PayloadT
            The partial role payload. Recognised keys are `"name"`, `"hoist"`,
            `"managed"`, `"mentionable"`, `"position"`, `"color"`,
            `"permissions"` and `"denied_permissions"`.

        Returns
        -------
        typing.Set[str]
            The payload keys of the fields which changed.

        Raises
        ------
        kura.errors.InvalidDataFound
            If a present field has an unusable value.

            Fields before the invalid one stay merged and the hierarchy and
            holders are still refreshed before this is raised.
        """
        skip = ("position",) if self.is_everyone else ()
        try:
            changed = _ROLE_MERGER.merge(self, payload, skip=skip)

        finally:
            # A failed merge may still have written the position.
            if not skip and "position" in payload and (server := self.server) is not None:
                server.reorder_roles()

            refreshed = merging.refresh_permissions(list(self._iter_members()))
            _LOGGER.debug(
                "updated role %s in server %s, refreshed %s members", self._id, self._server_id, refreshed
            )

        return changed

    def has_permission(self, permission: hikari.Permissions, /) -> bool:
        """Whether this role itself grants every flag in `permission`."""
        return self._permissions.has(permission)
