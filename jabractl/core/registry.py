"""Authoritative set of attached devices."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from enum import Enum

from jabractl.core.errors import UnknownDeviceError
from jabractl.core.locks import ReadWriteLock
from jabractl.core.model import BatteryStatus, DeviceHandle, DeviceInfo

LOGGER = logging.getLogger(__name__)


class DeviceState(Enum):
    UNKNOWN = "unknown"
    ATTACHED = "attached"
    DETACHED = "detached"


@dataclass(frozen=True)
class _Entry:
    info: DeviceInfo
    order: int
    battery: BatteryStatus | None = None


class DeviceRegistry:
    """Attached devices keyed by handle, with the latest battery status of each.

    Writes come from the bridge dispatch path (or happen while the lifecycle
    lock is held exclusively); reads may come from any thread. Every read
    returns a copy.
    """

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._entries: dict[DeviceHandle, _Entry] = {}
        self._detached: set[DeviceHandle] = set()
        self._order = itertools.count()

    def attach(self, info: DeviceInfo) -> bool:
        """Add a device; return ``False`` if the handle was already attached."""
        with self._lock.write_locked():
            current = self._entries.get(info.handle)
            self._detached.discard(info.handle)
            if current is None:
                self._entries[info.handle] = _Entry(info=info, order=next(self._order))
                LOGGER.debug("Device %s attached: %s", info.handle, info.name)
                return True

            if current.info.identity() == info.identity():
                LOGGER.warning("Device %s attached twice; refreshing its info", info.handle)
                self._entries[info.handle] = _Entry(
                    info=info, order=current.order, battery=current.battery
                )
            else:
                LOGGER.warning(
                    "Device %s re-attached with a different identity (%s -> %s); "
                    "treating it as a new device",
                    info.handle,
                    current.info.identity(),
                    info.identity(),
                )
                self._entries[info.handle] = _Entry(info=info, order=next(self._order))
            return False

    def detach(self, handle: DeviceHandle) -> DeviceInfo | None:
        with self._lock.write_locked():
            entry = self._entries.pop(handle, None)
            if entry is None:
                return None
            self._detached.add(handle)
            LOGGER.debug("Device %s detached", handle)
            return entry.info

    def update_battery(self, handle: DeviceHandle, status: BatteryStatus) -> bool:
        with self._lock.write_locked():
            entry = self._entries.get(handle)
            if entry is None:
                return False
            self._entries[handle] = _Entry(info=entry.info, order=entry.order, battery=status)
            return True

    def clear(self) -> None:
        with self._lock.write_locked():
            self._detached.update(self._entries)
            self._entries.clear()

    def state(self, handle: DeviceHandle) -> DeviceState:
        with self._lock.read_locked():
            if handle in self._entries:
                return DeviceState.ATTACHED
            if handle in self._detached:
                return DeviceState.DETACHED
            return DeviceState.UNKNOWN

    def get(self, handle: DeviceHandle) -> DeviceInfo | None:
        with self._lock.read_locked():
            entry = self._entries.get(handle)
            return entry.info if entry else None

    def require(self, handle: DeviceHandle) -> DeviceInfo:
        info = self.get(handle)
        if info is None:
            raise UnknownDeviceError(f"Device {handle} is not attached")
        return info

    def battery(self, handle: DeviceHandle) -> BatteryStatus | None:
        with self._lock.read_locked():
            entry = self._entries.get(handle)
            return entry.battery if entry else None

    def list_attached(self) -> list[DeviceInfo]:
        with self._lock.read_locked():
            entries = sorted(self._entries.values(), key=lambda e: e.order)
        return [entry.info for entry in entries]

    def __contains__(self, handle: object) -> bool:
        with self._lock.read_locked():
            return handle in self._entries

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._entries)
