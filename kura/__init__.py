"""An in-memory cache of chat servers and the roles, members and channels they own."""

from __future__ import annotations

__all__: typing.Final[typing.Sequence[str]] = [
    "Channel",
    "ColorValue",
    "DuplicateEntryError",
    "EntityCache",
    "EntityKind",
    "EntityRegistry",
    "errors",
    "InvalidDataFound",
    "KuraException",
    "LockedStateError",
    "Member",
    "MIN_POSITION",
    "PermissionValue",
    "Role",
    "Server",
    "traits",
    "UpdateMerger",
]

import typing

from kura import errors
from kura import traits
from kura.cache import EntityCache
from kura.cache import EntityKind
from kura.channels import Channel
from kura.errors import *
from kura.members import Member
from kura.merging import UpdateMerger
from kura.registry import EntityRegistry
from kura.roles import MIN_POSITION
from kura.roles import Role
from kura.servers import Server
from kura.values import ColorValue
from kura.values import PermissionValue
