import hikari
import pytest

import kura
from kura import members
from kura import registry

from .conftest import SEND_MESSAGES
from .conftest import VIEW_CHANNEL


def test_scenario_role_update_revokes_permission(populated_cache: kura.EntityCache):
    member = populated_cache.get_member("S1", "M1")
    assert member is not None
    assert member.effective_permissions.permissions == hikari.Permissions.SEND_MESSAGES

    populated_cache.set_role("S1", "R1", {"permissions": 0})

    assert member.effective_permissions.permissions == hikari.Permissions.NONE


class TestMember:
    def test_fields(self, populated_cache: kura.EntityCache):
        member = populated_cache.get_member("S1", "M1")
        assert member is not None

        assert member.user_id == "M1"
        assert member.server_id == "S1"
        assert member.nickname == "Member one"
        assert member.role_ids == frozenset({"R1"})
        assert member.mention == "<@M1>"
        assert member.server is populated_cache.get_server("S1")

    def test_update_present_null_clears_nickname(self, populated_cache: kura.EntityCache):
        member = populated_cache.get_member("S1", "M1")
        assert member is not None

        assert member.update({"nick": None}) == {"nick"}
        assert member.nickname is None

    def test_update_preserves_absent_fields(self, populated_cache: kura.EntityCache):
        member = populated_cache.get_member("S1", "M1")
        assert member is not None

        assert member.update({"mute": True}) == {"mute"}
        assert member.is_mute is True
        assert member.nickname == "Member one"
        assert member.role_ids == frozenset({"R1"})

    def test_update_replaces_role_ids(self, populated_cache: kura.EntityCache):
        populated_cache.set_role("S1", "R2", {"position": 2, "permissions": VIEW_CHANNEL})
        member = populated_cache.get_member("S1", "M1")
        assert member is not None

        assert member.update({"roles": ["R2"]}) == {"roles"}
        assert member.role_ids == frozenset({"R2"})
        assert member.effective_permissions.raw_value == VIEW_CHANNEL

    def test_update_same_role_ids(self, populated_cache: kura.EntityCache):
        member = populated_cache.get_member("S1", "M1")
        assert member is not None

        assert member.update({"roles": ["R1"]}) == set()

    def test_update_invalid_roles(self, populated_cache: kura.EntityCache):
        member = populated_cache.get_member("S1", "M1")
        assert member is not None

        with pytest.raises(kura.InvalidDataFound):
            member.update({"roles": "R1"})

        assert member.role_ids == frozenset({"R1"})

    def test_roles_in_hierarchy_order(self, populated_cache: kura.EntityCache):
        populated_cache.set_role("S1", "R2", {"position": 0})
        member = populated_cache.set_member("S1", "M1", {"roles": ["R1", "R2"]})
        assert member is not None

        assert [role.id for role in member.roles] == ["R2", "R1"]

    def test_has_role(self, populated_cache: kura.EntityCache):
        member = populated_cache.get_member("S1", "M1")
        assert member is not None

        assert member.has_role("S1") is True
        assert member.has_role("R1") is True
        assert member.has_role("R2") is False

    def test_effective_permissions_snapshot_is_stable(self, populated_cache: kura.EntityCache):
        member = populated_cache.get_member("S1", "M1")
        assert member is not None
        snapshot = member.effective_permissions

        populated_cache.set_role("S1", "R1", {"permissions": VIEW_CHANNEL})

        assert snapshot.is_locked is True
        assert snapshot.raw_value == SEND_MESSAGES
        assert member.effective_permissions is not snapshot
        assert member.effective_permissions.raw_value == VIEW_CHANNEL

        with pytest.raises(kura.LockedStateError):
            member.effective_permissions.set_raw_value(0)


class TestUpdatePermissions:
    def test_higher_grant_overrides_lower_deny(self, cache: kura.EntityCache):
        cache.set_role("S1", "R1", {"position": 1, "denied_permissions": SEND_MESSAGES})
        cache.set_role("S1", "R2", {"position": 2, "permissions": SEND_MESSAGES})
        member = cache.set_member("S1", "M1", {"roles": ["R1", "R2"]})
        assert member is not None

        assert member.has_permission(hikari.Permissions.SEND_MESSAGES) is True

    def test_higher_deny_overrides_lower_grant(self, cache: kura.EntityCache):
        cache.set_role("S1", "R1", {"position": 1, "permissions": SEND_MESSAGES | VIEW_CHANNEL})
        cache.set_role("S1", "R2", {"position": 2, "denied_permissions": SEND_MESSAGES})
        member = cache.set_member("S1", "M1", {"roles": ["R1", "R2"]})
        assert member is not None

        assert member.effective_permissions.raw_value == VIEW_CHANNEL

    def test_includes_everyone_role(self, cache: kura.EntityCache):
        cache.set_role("S1", "S1", {"permissions": VIEW_CHANNEL})
        member = cache.set_member("S1", "M1", {})
        assert member is not None

        assert member.effective_permissions.raw_value == VIEW_CHANNEL

    def test_position_ties_are_ordered_by_id(self, cache: kura.EntityCache):
        cache.set_role("S1", "RA", {"position": 1, "permissions": SEND_MESSAGES})
        cache.set_role("S1", "RB", {"position": 1, "denied_permissions": SEND_MESSAGES})
        member = cache.set_member("S1", "M1", {"roles": ["RA", "RB"]})
        assert member is not None

        assert member.effective_permissions.raw_value == 0

    def test_skips_dangling_role_ids(self, populated_cache: kura.EntityCache):
        populated_cache.with_lazy_roles(False)
        member = populated_cache.set_member("S1", "M1", {"roles": ["R1", "R404"]})
        assert member is not None

        assert member.update_permissions().raw_value == SEND_MESSAGES
        assert member.role_ids == frozenset({"R1", "R404"})
        assert [role.id for role in member.roles] == ["R1"]

    def test_without_server(self, populated_cache: kura.EntityCache):
        member = populated_cache.get_member("S1", "M1")
        assert member is not None
        populated_cache.delete_server("S1")

        assert member.update_permissions().raw_value == 0
        assert member.roles == []


class TestLazyRoles:
    def test_references_create_blank_roles(self, populated_cache: kura.EntityCache):
        populated_cache.set_member("S1", "M1", {"roles": ["R1", "R9"]})

        role = populated_cache.get_role("S1", "R9")
        assert role is not None
        assert role.name is None
        assert role.permissions.raw_value == 0
        assert list(role.member_ids) == ["M1"]

    def test_disabled(self, populated_cache: kura.EntityCache):
        populated_cache.with_lazy_roles(False)

        populated_cache.set_member("S1", "M1", {"roles": ["R1", "R9"]})

        assert populated_cache.get_role("S1", "R9") is None
        assert populated_cache.get_member("S1", "M1").role_ids == frozenset({"R1", "R9"})


class TestPermissionsIn:
    def _add_channel(self, cache: kura.EntityCache, *overwrites: dict) -> None:
        cache.set_role("S1", "S1", {"permissions": SEND_MESSAGES | VIEW_CHANNEL})
        cache.set_channel("S1", "C1", {"name": "general", "permission_overwrites": list(overwrites)})

    def test_unknown_channel(self, populated_cache: kura.EntityCache):
        member = populated_cache.get_member("S1", "M1")
        assert member is not None

        assert member.permissions_in("C404") == member.effective_permissions

    def test_everyone_overwrite(self, populated_cache: kura.EntityCache):
        populated_cache.set_member("S1", "M2", {})
        self._add_channel(populated_cache, {"id": "S1", "type": 0, "deny": str(SEND_MESSAGES)})

        assert populated_cache.get_member("S1", "M2").permissions_in("C1").raw_value == VIEW_CHANNEL

    def test_role_overwrite_beats_everyone_overwrite(self, populated_cache: kura.EntityCache):
        self._add_channel(
            populated_cache,
            {"id": "S1", "type": 0, "deny": str(SEND_MESSAGES)},
            {"id": "R1", "type": 0, "allow": str(SEND_MESSAGES)},
        )

        permissions = populated_cache.get_member("S1", "M1").permissions_in("C1")

        assert permissions.raw_value == SEND_MESSAGES | VIEW_CHANNEL
        assert permissions.is_locked is True

    def test_member_overwrite_beats_role_overwrite(self, populated_cache: kura.EntityCache):
        self._add_channel(
            populated_cache,
            {"id": "R1", "type": 0, "allow": str(SEND_MESSAGES)},
            {"id": "M1", "type": 1, "deny": str(SEND_MESSAGES | VIEW_CHANNEL)},
        )

        assert populated_cache.get_member("S1", "M1").permissions_in("C1").raw_value == 0

    def test_overwrite_of_evicted_role_is_skipped(self, populated_cache: kura.EntityCache):
        self._add_channel(
            populated_cache,
            {"id": "S1", "type": 0, "deny": str(SEND_MESSAGES)},
            {"id": "R1", "type": 0, "allow": str(SEND_MESSAGES)},
        )

        populated_cache.delete_role("R1", server_id="S1")

        member = populated_cache.get_member("S1", "M1")
        assert member.role_ids == frozenset({"R1"})
        assert member.permissions_in("C1").raw_value == VIEW_CHANNEL


def test_hooks_without_cached_server(populated_cache: kura.EntityCache):
    entities: registry.EntityRegistry[str, members.Member] = registry.EntityRegistry("members")
    member = members.Member(populated_cache, "S9", "M5")

    entities.insert("M5", member)
    entities.remove("M5")

    assert member.server is None
    assert populated_cache.get_server("S9") is None
    assert populated_cache.get_server("S1").user_ids == ("M1",)
