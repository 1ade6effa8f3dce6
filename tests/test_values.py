import hikari
import pytest

from kura import errors
from kura import values


class TestLockableValue:
    def test_set_raw_value_when_unlocked(self):
        value = values.PermissionValue(1)

        value.set_raw_value(3)

        assert value.raw_value == 3
        assert value.is_locked is False

    def test_lock_is_idempotent(self):
        value = values.PermissionValue(1)

        value.lock()
        value.lock()

        assert value.is_locked is True
        assert value.raw_value == 1

    def test_set_raw_value_after_lock(self):
        value = values.ColorValue(0x00FF00)
        value.lock()

        with pytest.raises(errors.LockedStateError):
            value.set_raw_value(0)

        with pytest.raises(errors.LockedStateError):
            value.set_raw_value(0x0000FF)

        assert value.raw_value == 0x00FF00

    def test_locked(self):
        value = values.PermissionValue.locked(8)

        assert value.is_locked is True
        assert value.raw_value == 8

    def test_internal_setter_ignores_lock(self):
        value = values.PermissionValue.locked(8)

        value._set_raw_value_internal(16)

        assert value.raw_value == 16
        assert value.is_locked is True

    def test_rejects_bool(self):
        with pytest.raises(TypeError):
            values.PermissionValue(True)  # type: ignore[arg-type]

    def test_equality(self):
        assert values.PermissionValue(4) == values.PermissionValue.locked(4)
        assert values.PermissionValue(4) != values.PermissionValue(5)
        assert values.PermissionValue(4) != values.ColorValue(4)

    def test_is_unhashable(self):
        with pytest.raises(TypeError):
            hash(values.PermissionValue(4))

    def test_int(self):
        assert int(values.ColorValue(0xABCDEF)) == 0xABCDEF


class TestPermissionValue:
    def test_permissions(self):
        raw_value = int(hikari.Permissions.SEND_MESSAGES | hikari.Permissions.VIEW_CHANNEL)

        value = values.PermissionValue(raw_value)

        assert value.permissions == hikari.Permissions.SEND_MESSAGES | hikari.Permissions.VIEW_CHANNEL

    def test_has(self):
        value = values.PermissionValue(int(hikari.Permissions.SEND_MESSAGES))

        assert value.has(hikari.Permissions.SEND_MESSAGES) is True
        assert value.has(hikari.Permissions.SEND_MESSAGES | hikari.Permissions.VIEW_CHANNEL) is False

    def test_rejects_negative(self):
        with pytest.raises(ValueError):
            values.PermissionValue(-1)


class TestColorValue:
    def test_color(self):
        assert values.ColorValue(0xFF0000).color == hikari.Color(0xFF0000)

    @pytest.mark.parametrize("raw_value", [-1, values.MAX_COLOR + 1])
    def test_rejects_out_of_range(self, raw_value: int):
        with pytest.raises(ValueError):
            values.ColorValue(raw_value)
