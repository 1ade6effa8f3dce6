import pytest

import kura
from kura import servers

from .conftest import SEND_MESSAGES


class TestGetUserId:
    def test_flat(self):
        assert servers.get_user_id({"user_id": 123}) == "123"

    def test_nested(self):
        assert servers.get_user_id({"user": {"id": "M1"}}) == "M1"

    def test_missing(self):
        with pytest.raises(kura.InvalidDataFound):
            servers.get_user_id({"nick": "no user"})


class TestServer:
    def test_fields(self, populated_cache: kura.EntityCache):
        server = populated_cache.get_server("S1")
        assert server is not None

        assert server.id == "S1"
        assert server.name == "Test server"
        assert str(server) == "Test server"
        assert server.owner_id == "M1"
        assert server.is_unavailable is False
        assert server.everyone_role is populated_cache.get_role("S1", "S1")
        assert server.role_hierarchy == ("S1", "R1")
        assert server.user_ids == ("M1",)
        assert server.member_count == 1

    def test_update_owner_id_present_null(self, populated_cache: kura.EntityCache):
        server = populated_cache.get_server("S1")
        assert server is not None

        assert server.update({"owner_id": None}) == {"owner_id"}
        assert server.owner_id is None
        assert server.name == "Test server"

    def test_update_roles_is_authoritative(self, populated_cache: kura.EntityCache):
        server = populated_cache.get_server("S1")
        assert server is not None

        changed = server.update({"roles": [{"id": "S1"}, {"id": "R2", "position": 4}]})

        assert "roles" in changed
        assert server.roles.keys() == ["S1", "R2"]
        assert server.role_hierarchy == ("S1", "R2")
        assert populated_cache.get_effective_permissions("S1", "M1").raw_value == 0

    def test_update_members_is_partial(self, populated_cache: kura.EntityCache):
        server = populated_cache.get_server("S1")
        assert server is not None

        server.update({"members": [{"user": {"id": "M2"}, "roles": ["R1"]}]})

        assert server.user_ids == ("M1", "M2")
        assert populated_cache.get_effective_permissions("S1", "M2").raw_value == SEND_MESSAGES

    def test_update_channels(self, populated_cache: kura.EntityCache):
        server = populated_cache.get_server("S1")
        assert server is not None

        assert "channels" in server.update({"channels": [{"id": "C1", "name": "general"}]})
        assert server.channels.get("C1").name == "general"

    def test_update_channels_when_disabled(self, populated_cache: kura.EntityCache):
        populated_cache.with_channels(False)
        server = populated_cache.get_server("S1")
        assert server is not None

        assert server.update({"channels": [{"id": "C1"}]}) == set()
        assert len(server.channels) == 0

    def test_update_invalid_list(self, populated_cache: kura.EntityCache):
        server = populated_cache.get_server("S1")
        assert server is not None

        with pytest.raises(kura.InvalidDataFound):
            server.update({"members": {"user_id": "M2"}})

    def test_remove_role_keeps_member_role_ids(self, populated_cache: kura.EntityCache):
        populated_cache.set_role("S1", "R2", {"position": 2})
        populated_cache.set_member("S1", "M1", {"roles": ["R1", "R2"]})
        server = populated_cache.get_server("S1")
        assert server is not None
        other_role = server.roles.get("R2")
        assert other_role is not None

        role = server.remove_role("R1")

        assert role is not None
        assert role.id == "R1"
        assert "R1" not in server.roles
        assert "R1" not in server.role_hierarchy
        member = server.members.get("M1")
        assert member.role_ids == frozenset({"R1", "R2"})
        assert member.effective_permissions.raw_value == 0
        assert member.update_permissions().raw_value == 0
        assert list(other_role.member_ids) == ["M1"]

    def test_remove_missing_role(self, populated_cache: kura.EntityCache):
        assert populated_cache.get_server("S1").remove_role("R404") is None

    def test_remove_member(self, populated_cache: kura.EntityCache):
        server = populated_cache.get_server("S1")
        assert server is not None

        member = server.remove_member("M1")

        assert member is not None
        assert server.user_ids == ()
        assert server.remove_member("M1") is None

    def test_clear(self, populated_cache: kura.EntityCache):
        server = populated_cache.get_server("S1")
        assert server is not None
        populated_cache.set_channel("S1", "C1", {})

        server.clear()

        assert len(server.roles) == 0
        assert len(server.members) == 0
        assert len(server.channels) == 0
        assert server.role_hierarchy == ()
        assert server.user_ids == ()

    def test_update_unchanged_lists(self, populated_cache: kura.EntityCache):
        server = populated_cache.get_server("S1")
        assert server is not None
        populated_cache.set_channel("S1", "C1", {"name": "general"})

        changed = server.update(
            {
                "roles": [{"id": "S1", "permissions": "0"}, {"id": "R1", "position": 1}],
                "members": [{"user_id": "M1", "roles": ["R1"]}],
                "channels": [{"id": "C1", "name": "general"}],
            }
        )

        assert changed == set()

    def test_update_lists_with_changes(self, populated_cache: kura.EntityCache):
        server = populated_cache.get_server("S1")
        assert server is not None

        changed = server.update(
            {
                "roles": [{"id": "S1"}, {"id": "R1", "name": "Renamed"}],
                "members": [{"user_id": "M2"}],
            }
        )

        assert changed == {"roles", "members"}
