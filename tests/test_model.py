from __future__ import annotations

import pytest

from jabractl.core.model import BatteryStatus, ButtonId, DeviceHandle


def test_button_ids_match_native_enumeration() -> None:
    assert len(ButtonId) == 43
    assert ButtonId.CYCLIC == 0
    assert ButtonId.HOOK_SWITCH == 15
    assert ButtonId.KEY_0 == 17
    assert ButtonId.MUTE == 31
    assert ButtonId.VOLUME_UP == 42


@pytest.mark.parametrize("device_id", [-1, 0x10000, True, "1"])
def test_device_handle_rejects_invalid_ids(device_id: object) -> None:
    with pytest.raises(ValueError):
        DeviceHandle(device_id)  # type: ignore[arg-type]


def test_device_handle_is_hashable_and_prints_id() -> None:
    assert DeviceHandle(7) == DeviceHandle(7)
    assert {DeviceHandle(7): "x"}[DeviceHandle(7)] == "x"
    assert str(DeviceHandle(7)) == "7"


@pytest.mark.parametrize("level", [-1, 101])
def test_battery_level_out_of_range_rejected(level: int) -> None:
    with pytest.raises(ValueError):
        BatteryStatus(level_percent=level, charging=False, low=False)
