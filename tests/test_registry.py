from unittest import mock

import pytest

from kura import errors
from kura import registry


class TestEntityRegistry:
    def test_insert_fires_on_cached(self):
        entities: registry.EntityRegistry[str, mock.Mock] = registry.EntityRegistry("test")
        entity = mock.Mock()

        entities.insert("1", entity)

        entity.on_cached.assert_called_once_with()
        entity.on_uncached.assert_not_called()
        assert entities.get("1") is entity
        assert "1" in entities
        assert len(entities) == 1

    def test_insert_duplicate_key(self):
        entities: registry.EntityRegistry[str, mock.Mock] = registry.EntityRegistry("test")
        entity = mock.Mock()
        entities.insert("1", entity)
        other = mock.Mock()

        with pytest.raises(errors.DuplicateEntryError):
            entities.insert("1", other)

        assert entities.get("1") is entity
        entity.on_cached.assert_called_once_with()
        other.on_cached.assert_not_called()

    def test_duplicate_entry_error_is_key_error(self):
        entities: registry.EntityRegistry[str, mock.Mock] = registry.EntityRegistry("test")
        entities.insert("1", mock.Mock())

        with pytest.raises(KeyError):
            entities.insert("1", mock.Mock())

    def test_get_missing(self):
        assert registry.EntityRegistry("test").get("1") is None

    def test_get_or_create(self):
        entities: registry.EntityRegistry[str, mock.Mock] = registry.EntityRegistry("test")
        entity = mock.Mock()
        factory = mock.Mock(return_value=entity)

        assert entities.get_or_create("1", factory) is entity
        assert entities.get_or_create("1", factory) is entity

        factory.assert_called_once_with()
        entity.on_cached.assert_called_once_with()

    def test_remove(self):
        entities: registry.EntityRegistry[str, mock.Mock] = registry.EntityRegistry("test")
        entity = mock.Mock()
        entities.insert("1", entity)

        assert entities.remove("1") is entity
        assert entities.remove("1") is None

        entity.on_uncached.assert_called_once_with()
        assert "1" not in entities

    def test_clear(self):
        entities: registry.EntityRegistry[str, mock.Mock] = registry.EntityRegistry("test")
        first = mock.Mock()
        second = mock.Mock()
        entities.insert("1", first)
        entities.insert("2", second)

        assert entities.clear() == [first, second]

        first.on_uncached.assert_called_once_with()
        second.on_uncached.assert_called_once_with()
        assert len(entities) == 0

    def test_hook_can_mutate_registry_during_clear(self):
        entities: registry.EntityRegistry[str, mock.Mock] = registry.EntityRegistry("test")
        second = mock.Mock()
        first = mock.Mock(on_uncached=mock.Mock(side_effect=lambda: entities.remove("2")))
        entities.insert("1", first)
        entities.insert("2", second)

        assert entities.clear() == [first]

        second.on_uncached.assert_called_once_with()
        assert len(entities) == 0

    def test_snapshots(self):
        entities: registry.EntityRegistry[str, mock.Mock] = registry.EntityRegistry("test")
        entity = mock.Mock()
        entities.insert("1", entity)

        assert entities.keys() == ["1"]
        assert entities.values() == [entity]
        assert entities.items() == [("1", entity)]
        assert list(entities) == ["1"]
