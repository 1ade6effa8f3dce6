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
"""Protocols for the narrow capabilities the cached entities depend on.

.. note::
    There is no guarantee that the protocols defined here will be included in
    the MRO of the classes which implement them.
"""

from __future__ import annotations

__all__: typing.Sequence[str] = ["CacheAware", "EntityLookup"]

import typing

if typing.TYPE_CHECKING:
    from . import members as members_
    from . import roles as roles_
    from . import servers as servers_


@typing.runtime_checkable
class CacheAware(typing.Protocol):
    """The lifecycle hooks an entity exposes to the registry it's stored in."""

    __slots__: typing.Sequence[str] = ()

    def on_cached(self) -> None:
        """Called once when the entity is first inserted into a registry.

        This is where an entity registers itself with the indexes of the
        entities it references.
        """
        raise NotImplementedError

    def on_uncached(self) -> None:
        """Called once when the entity is removed from its registry.

        .. note::
            The entities this refers to may already be gone when this is
            called, in which case this should do nothing.
        """
        raise NotImplementedError


@typing.runtime_checkable
class EntityLookup(typing.Protocol):
    """Read-only access to the cached entities, used to resolve back-references.

    Entities keep ids rather than references to the entities they belong to
    and resolve them through this each time.
    """

    __slots__: typing.Sequence[str] = ()

    @property
    def config(self) -> typing.Mapping[str, typing.Any]:
        """The settings of the cache this looks up entities in."""
        raise NotImplementedError

    def get_server(self, server_id: str, /) -> typing.Optional[servers_.Server]:
        """Get a cached server.

        Parameters
        ----------
        server_id : str
            ID of the server to get.

        Returns
        -------
        typing.Optional[kura.servers.Server]
            The server if it's cached, else `builtins.None`.
        """
        raise NotImplementedError

    def get_role(self, server_id: str, role_id: str, /) -> typing.Optional[roles_.Role]:
        """Get a cached role.

        Parameters
        ----------
        server_id : str
            ID of the server the role belongs to.
        role_id : str
            ID of the role to get.

        Returns
        -------
        typing.Optional[kura.roles.Role]
            The role if it's cached, else `builtins.None`.
        """
        raise NotImplementedError

    def get_member(self, server_id: str, user_id: str, /) -> typing.Optional[members_.Member]:
        """Get a cached member.

        Parameters
        ----------
        server_id : str
            ID of the server the member belongs to.
        user_id : str
            ID of the member's user.

        Returns
        -------
        typing.Optional[kura.members.Member]
            The member if it's cached, else `builtins.None`.
        """
        raise NotImplementedError
