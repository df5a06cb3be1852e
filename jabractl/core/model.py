"""Core data models shared by the bridge, registry, facade and CLI."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import ClassVar

MAX_DEVICE_ID = 0xFFFF
DEFAULT_APP_ID = "88b7-5cbde35c-e588-49b3-a6d5-f54278270e28"
JABRA_VENDOR_ID = 0x0B0E


class ButtonId(IntEnum):
    """Translated button identifiers, in ``Jabra_ButtonID`` wire order."""

    CYCLIC = 0
    CYCLIC_END = 1
    DECLINE = 2
    DIAL_NEXT = 3
    DIAL_PREV = 4
    ENDCALL = 5
    FIRE_ALARM = 6
    FLASH = 7
    FLEXIBLE_BOOT_MUTE = 8
    GN_BUTTON_1 = 9
    GN_BUTTON_2 = 10
    GN_BUTTON_3 = 11
    GN_BUTTON_4 = 12
    GN_BUTTON_5 = 13
    GN_BUTTON_6 = 14
    HOOK_SWITCH = 15
    JABRA_BUTTON = 16
    KEY_0 = 17
    KEY_1 = 18
    KEY_2 = 19
    KEY_3 = 20
    KEY_4 = 21
    KEY_5 = 22
    KEY_6 = 23
    KEY_7 = 24
    KEY_8 = 25
    KEY_9 = 26
    KEY_CLEAR = 27
    KEY_POUND = 28
    KEY_STAR = 29
    LINE_BUSY = 30
    MUTE = 31
    OFFLINE = 32
    OFFHOOK = 33
    ONLINE = 34
    PSEUDO_OFFHOOK = 35
    REDIAL = 36
    REJECT_CALL = 37
    SPEED_DIAL = 38
    TRANSFER = 39
    VOICE_MAIL = 40
    VOLUME_DOWN = 41
    VOLUME_UP = 42


@dataclass(frozen=True)
class DeviceHandle:
    """Session-scoped identifier wrapping the native ``uint16`` device id."""

    device_id: int

    def __post_init__(self) -> None:
        if isinstance(self.device_id, bool) or not isinstance(self.device_id, int):
            raise ValueError(f"device id must be an integer, got {self.device_id!r}")
        if not 0 <= self.device_id <= MAX_DEVICE_ID:
            raise ValueError(f"device id {self.device_id} is outside 0..{MAX_DEVICE_ID}")

    def __str__(self) -> str:
        return str(self.device_id)


@dataclass(frozen=True)
class DeviceInfo:
    handle: DeviceHandle
    name: str
    serial_number: str | None
    vendor_id: int
    product_id: int
    is_dongle: bool

    def identity(self) -> tuple[str | None, int, int]:
        return (self.serial_number, self.vendor_id, self.product_id)


@dataclass(frozen=True)
class BatteryStatus:
    level_percent: int
    charging: bool
    low: bool

    def __post_init__(self) -> None:
        if not 0 <= self.level_percent <= 100:
            raise ValueError(f"battery level {self.level_percent} is outside 0..100")


class EventKind(Enum):
    DEVICE_ATTACHED = "device_attached"
    DEVICE_DETACHED = "device_detached"
    BUTTON = "button"
    RAW_HID = "raw_hid"
    BATTERY = "battery"


@dataclass(frozen=True)
class DeviceEvent:
    """Common fields of every streamed event.

    ``sequence`` is the global enqueue order and ``timestamp_ns`` the
    monotonic clock at enqueue time; both only approximate ordering across
    callback kinds.
    """

    kind: ClassVar[EventKind]

    handle: DeviceHandle
    sequence: int
    timestamp_ns: int


@dataclass(frozen=True)
class DeviceAttached(DeviceEvent):
    kind: ClassVar[EventKind] = EventKind.DEVICE_ATTACHED

    info: DeviceInfo


@dataclass(frozen=True)
class DeviceDetached(DeviceEvent):
    kind: ClassVar[EventKind] = EventKind.DEVICE_DETACHED

    info: DeviceInfo | None


@dataclass(frozen=True)
class ButtonEvent(DeviceEvent):
    kind: ClassVar[EventKind] = EventKind.BUTTON

    button: ButtonId
    pressed: bool


@dataclass(frozen=True)
class RawHidEvent(DeviceEvent):
    kind: ClassVar[EventKind] = EventKind.RAW_HID

    usage_page: int
    usage: int
    value: int


@dataclass(frozen=True)
class BatteryEvent(DeviceEvent):
    kind: ClassVar[EventKind] = EventKind.BATTERY

    status: BatteryStatus


@dataclass(frozen=True)
class BridgeStats:
    dispatched: int
    dropped: int
    discarded: int
    rejected: int


@dataclass(frozen=True)
class BridgeConfig:
    app_id: str = DEFAULT_APP_ID
    library_path: str | None = None
    simulate: bool = False
    simulate_drain_s: float | None = None
    queue_maxsize: int = 0
    shutdown_timeout_s: float = 2.0
