"""Service layer wiring the bridge components; used by the API and CLI."""

from __future__ import annotations

import logging

from jabractl.core.bridge import CallbackBridge
from jabractl.core.facade import ControlFacade, as_handle
from jabractl.core.lifecycle import LifecycleManager, LifecycleState
from jabractl.core.model import BatteryStatus, BridgeConfig, BridgeStats, DeviceHandle, DeviceInfo
from jabractl.core.ownership import OwnershipBoundary, OwnershipLedger
from jabractl.core.registry import DeviceRegistry
from jabractl.core.stream import EventStream
from jabractl.native.base import NativeSdk

LOGGER = logging.getLogger(__name__)


def build_sdk(config: BridgeConfig) -> NativeSdk:
    if config.simulate:
        from jabractl.native.simulated import SimulatedSdk, demo_devices

        LOGGER.info("Using the simulated Jabra SDK")
        return SimulatedSdk(demo_devices(), drain_interval_s=config.simulate_drain_s)

    from jabractl.native.ctypes_sdk import CtypesSdk

    return CtypesSdk(config.library_path)


class HeadsetService:
    def __init__(
        self,
        sdk: NativeSdk | None = None,
        *,
        config: BridgeConfig | None = None,
        warnings: tuple[str, ...] = (),
    ) -> None:
        self.config = config or BridgeConfig()
        self.warnings = warnings
        self.sdk = sdk if sdk is not None else build_sdk(self.config)
        self.ledger = OwnershipLedger()
        self.boundary = OwnershipBoundary(self.sdk, self.ledger)
        self.registry = DeviceRegistry()
        self.stream = EventStream()
        self.bridge = CallbackBridge(
            self.sdk,
            self.boundary,
            self.registry,
            self.stream,
            queue_maxsize=self.config.queue_maxsize,
            shutdown_timeout_s=self.config.shutdown_timeout_s,
        )
        self.lifecycle = LifecycleManager(self.sdk, self.bridge, self.boundary, self.registry)
        self.controls = ControlFacade(self.sdk, self.lifecycle, self.registry, self.boundary)

    @property
    def state(self) -> LifecycleState:
        return self.lifecycle.state

    def initialize(self, app_id: str | None = None) -> None:
        self.lifecycle.initialize(app_id if app_id is not None else self.config.app_id)

    def uninitialize(self) -> None:
        self.lifecycle.uninitialize()

    def list_devices(self) -> list[DeviceInfo]:
        with self.lifecycle.guard():
            return self.registry.list_attached()

    def get_device(self, device: DeviceHandle | int) -> DeviceInfo:
        with self.lifecycle.guard():
            return self.registry.require(as_handle(device))

    def last_battery(self, device: DeviceHandle | int) -> BatteryStatus | None:
        """Latest battery status reported by callback; ``None`` if none yet."""
        with self.lifecycle.guard():
            handle = as_handle(device)
            self.registry.require(handle)
            return self.registry.battery(handle)

    def flush(self, timeout: float | None = None) -> bool:
        return self.bridge.flush(timeout)

    def stats(self) -> BridgeStats:
        return self.bridge.stats()

    def close(self) -> None:
        if self.lifecycle.state is LifecycleState.INITIALIZED:
            self.lifecycle.uninitialize()
        self.stream.close()
