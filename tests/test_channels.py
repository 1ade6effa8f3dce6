import hikari
import pytest

import kura
from kura import channels

from .conftest import SEND_MESSAGES


class TestOverwrite:
    def test_from_payload(self):
        overwrite = channels.Overwrite.from_payload({"id": 1, "type": 1, "allow": "2048", "deny": 0})

        assert overwrite.target_id == "1"
        assert overwrite.type is hikari.PermissionOverwriteType.MEMBER
        assert overwrite.allow.raw_value == SEND_MESSAGES
        assert overwrite.allow.is_locked is True
        assert overwrite.deny.raw_value == 0

    def test_from_payload_missing_id(self):
        with pytest.raises(kura.InvalidDataFound):
            channels.Overwrite.from_payload({"type": 0})

    def test_apply(self):
        overwrite = channels.Overwrite("R1", hikari.PermissionOverwriteType.ROLE, 0b0100, 0b0011)

        assert overwrite.apply(0b1011) == 0b1100


class TestChannel:
    def test_update(self, populated_cache: kura.EntityCache):
        channel = populated_cache.set_channel("S1", "C1", {"name": "general", "type": 0, "topic": "hi", "nsfw": False})
        assert channel is not None

        assert channel.name == "general"
        assert channel.topic == "hi"
        assert channel.mention == "<#C1>"
        assert channel.server is populated_cache.get_server("S1")

        assert channel.update({"topic": None}) == {"topic"}
        assert channel.topic is None
        assert channel.name == "general"

    def test_update_overwrites(self, populated_cache: kura.EntityCache):
        channel = populated_cache.set_channel("S1", "C1", {})
        assert channel is not None
        payload = {"permission_overwrites": [{"id": "R1", "type": 0, "allow": "2048", "deny": "0"}]}

        assert channel.update(payload) == {"permission_overwrites"}
        assert channel.update(payload) == set()
        assert list(channel.permission_overwrites) == ["R1"]

        channel.update({"name": "renamed"})

        assert list(channel.permission_overwrites) == ["R1"]

    def test_update_null_overwrites(self, populated_cache: kura.EntityCache):
        channel = populated_cache.set_channel("S1", "C1", {})
        assert channel is not None

        with pytest.raises(kura.InvalidDataFound):
            channel.update({"permission_overwrites": None})
