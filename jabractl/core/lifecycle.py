"""Process-wide SDK lifecycle: Uninitialized <-> Initialized."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum

from jabractl.core.bridge import CallbackBridge
from jabractl.core.errors import (
    AlreadyInitializedError,
    InvalidParameterError,
    NotInitializedError,
    raise_for_return_code,
)
from jabractl.core.locks import ReadWriteLock
from jabractl.core.ownership import OwnershipBoundary
from jabractl.core.registry import DeviceRegistry
from jabractl.native.base import NativeSdk

LOGGER = logging.getLogger(__name__)


class LifecycleState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"


class LifecycleManager:
    """Owns the SDK init flag and sequences bridge setup and teardown.

    Transitions hold the lock exclusively; :meth:`guard` holds it shared, so a
    transition waits for in-flight control calls and no call starts while a
    transition is running.
    """

    def __init__(
        self,
        sdk: NativeSdk,
        bridge: CallbackBridge,
        boundary: OwnershipBoundary,
        registry: DeviceRegistry,
    ) -> None:
        self._sdk = sdk
        self._bridge = bridge
        self._boundary = boundary
        self._registry = registry
        self._lock = ReadWriteLock()
        self._state = LifecycleState.UNINITIALIZED

    @property
    def state(self) -> LifecycleState:
        return self._state

    def initialize(self, app_id: str) -> None:
        if not isinstance(app_id, str) or not app_id.strip():
            raise InvalidParameterError("app_id must be a non-empty string")

        with self._lock.write_locked():
            if self._state is LifecycleState.INITIALIZED:
                raise AlreadyInitializedError("Jabra SDK is already initialized")
            if self._sdk.is_initialized():
                raise AlreadyInitializedError(
                    "Jabra SDK is already initialized by another owner in this process"
                )

            raise_for_return_code(self._sdk.initialize(app_id), "Jabra_Initialize")
            try:
                self._bridge.register()
                devices = self._boundary.attached_devices()
                self._bridge.seed(devices)
                self._bridge.start_dispatch()
            except Exception:
                LOGGER.error("SDK session setup failed; rolling back initialization")
                self._bridge.stop()
                self._sdk.uninitialize()
                self._registry.clear()
                raise

            self._state = LifecycleState.INITIALIZED
            LOGGER.info("Jabra SDK initialized with %d attached device(s)", len(devices))

    def uninitialize(self) -> None:
        with self._lock.write_locked():
            if self._state is not LifecycleState.INITIALIZED:
                raise NotInitializedError("Jabra SDK is not initialized")
            try:
                self._bridge.stop()
            finally:
                try:
                    self._sdk.uninitialize()
                finally:
                    self._registry.clear()
                    self._state = LifecycleState.UNINITIALIZED
            LOGGER.info("Jabra SDK uninitialized")

    @contextmanager
    def guard(self) -> Iterator[None]:
        """Hold the session open for the duration of one operation."""
        with self._lock.read_locked():
            if self._state is not LifecycleState.INITIALIZED:
                raise NotInitializedError("Jabra SDK is not initialized")
            self._bridge.raise_if_failed()
            yield
