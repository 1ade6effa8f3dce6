import hikari
import pytest

import kura

SEND_MESSAGES = int(hikari.Permissions.SEND_MESSAGES)
VIEW_CHANNEL = int(hikari.Permissions.VIEW_CHANNEL)


@pytest.fixture()
def cache() -> kura.EntityCache:
    return kura.EntityCache()


@pytest.fixture()
def populated_cache(cache: kura.EntityCache) -> kura.EntityCache:
    cache.set_server(
        "S1",
        {
            "name": "Test server",
            "owner_id": "M1",
            "roles": [
                {"id": "S1", "name": "@everyone", "permissions": "0"},
                {"id": "R1", "name": "Speaker", "position": 1, "permissions": str(SEND_MESSAGES)},
            ],
        },
    )
    cache.set_member("S1", "M1", {"nick": "Member one", "roles": ["R1"]})
    return cache
