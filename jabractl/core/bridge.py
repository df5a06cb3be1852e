"""Callback bridge between SDK-owned threads and the dispatch thread.

Trampolines run on whatever thread the SDK chooses. They copy their scalar
arguments into an immutable record and enqueue it; nothing else happens on
the native thread. A single dispatch thread drains the queue in FIFO order,
turns records into typed events, applies them to the registry and publishes
them on the event stream.
"""

from __future__ import annotations

import itertools
import logging
import queue
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from jabractl.core.errors import AlreadyInitializedError, OwnershipViolationError
from jabractl.core.model import (
    BatteryEvent,
    BatteryStatus,
    BridgeStats,
    ButtonEvent,
    ButtonId,
    DeviceAttached,
    DeviceDetached,
    DeviceEvent,
    DeviceHandle,
    DeviceInfo,
    RawHidEvent,
)
from jabractl.core.ownership import OwnershipBoundary
from jabractl.core.registry import DeviceRegistry
from jabractl.core.stream import EventStream
from jabractl.native.base import CallbackKind, NativeSdk

LOGGER = logging.getLogger(__name__)

_STOP = object()


@dataclass(frozen=True)
class _Record:
    kind: CallbackKind
    args: tuple[int, ...]
    sequence: int
    timestamp_ns: int


class CallbackBridge:
    def __init__(
        self,
        sdk: NativeSdk,
        boundary: OwnershipBoundary,
        registry: DeviceRegistry,
        stream: EventStream,
        *,
        queue_maxsize: int = 0,
        shutdown_timeout_s: float = 2.0,
    ) -> None:
        self._sdk = sdk
        self._boundary = boundary
        self._registry = registry
        self._stream = stream
        self._queue_maxsize = queue_maxsize
        self._shutdown_timeout_s = shutdown_timeout_s

        self._trampolines: dict[CallbackKind, Callable[..., None]] = {
            CallbackKind.DEVICE_ATTACHED: self._on_device_attached,
            CallbackKind.DEVICE_DETACHED: self._on_device_detached,
            CallbackKind.BUTTON_TRANSLATED: self._on_button_translated,
            CallbackKind.BUTTON_RAW_HID: self._on_button_raw_hid,
            CallbackKind.BATTERY_STATUS: self._on_battery_status,
        }
        self._queue: Any = None
        self._accepting = False
        self._registered = False
        self._stopping = threading.Event()
        self._thread: threading.Thread | None = None
        self._seeded: list[DeviceAttached] = []
        self._sequence = itertools.count()
        self._drop_counter = itertools.count(1)

        self._dropped = 0
        self._dropped_reported = 0
        self._dispatched = 0
        self._discarded = 0
        self._rejected = 0
        self.fatal_error: OwnershipViolationError | None = None

    # -- trampolines (native threads) ------------------------------------------

    def _enqueue(self, kind: CallbackKind, *args: int) -> None:
        records = self._queue
        if not self._accepting or records is None:
            return
        record = _Record(kind, args, next(self._sequence), time.monotonic_ns())
        try:
            records.put_nowait(record)
        except queue.Full:
            self._dropped = next(self._drop_counter)

    def _on_device_attached(self, device_id: int) -> None:
        self._enqueue(CallbackKind.DEVICE_ATTACHED, device_id)

    def _on_device_detached(self, device_id: int) -> None:
        self._enqueue(CallbackKind.DEVICE_DETACHED, device_id)

    def _on_button_translated(self, device_id: int, button: int, value: int) -> None:
        self._enqueue(CallbackKind.BUTTON_TRANSLATED, device_id, button, value)

    def _on_button_raw_hid(self, device_id: int, usage_page: int, usage: int, value: int) -> None:
        self._enqueue(CallbackKind.BUTTON_RAW_HID, device_id, usage_page, usage, value)

    def _on_battery_status(self, device_id: int, level: int, charging: int, low: int) -> None:
        self._enqueue(CallbackKind.BATTERY_STATUS, device_id, level, charging, low)

    # -- session control -------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def register(self) -> None:
        """Register one trampoline per callback kind for a new session."""
        if self._registered:
            raise AlreadyInitializedError("SDK callbacks are already registered for this session")
        self._queue = queue.SimpleQueue() if self._queue_maxsize <= 0 else queue.Queue(
            maxsize=self._queue_maxsize
        )
        self._stopping.clear()
        self.fatal_error = None
        self._seeded = []
        self._accepting = True
        self._registered = True
        for kind, trampoline in self._trampolines.items():
            self._sdk.register_callback(kind, trampoline)
        LOGGER.debug("Registered %d SDK callbacks", len(self._trampolines))

    def seed(self, devices: Iterable[DeviceInfo]) -> None:
        """Apply devices found by enumeration before the dispatcher starts.

        The registry is updated at once; the matching events are published
        by the dispatch thread, so listeners never run on the caller's thread.
        """
        for info in devices:
            event = DeviceAttached(
                handle=info.handle,
                sequence=next(self._sequence),
                timestamp_ns=time.monotonic_ns(),
                info=info,
            )
            self._apply(event)
            self._seeded.append(event)

    def start_dispatch(self) -> None:
        if self._queue is None:
            raise RuntimeError("register() must be called before start_dispatch()")
        self._thread = threading.Thread(
            target=self._dispatch_loop,
            args=(self._queue, self._seeded),
            name="jabractl-dispatch",
            daemon=True,
        )
        self._thread.start()
        self._seeded = []

    def stop(self) -> None:
        """Unregister callbacks, stop the dispatcher and discard pending records."""
        records = self._queue
        if records is None:
            return
        self._accepting = False
        if self._registered:
            for kind in self._trampolines:
                self._sdk.register_callback(kind, None)
        self._stopping.set()

        thread = self._thread
        if thread is threading.current_thread():
            # Called from a listener: the loop exits once that listener returns.
            discarded = self._discard_pending(records)
            try:
                records.put_nowait(_STOP)
            except queue.Full:
                LOGGER.warning("Could not signal the dispatcher: callback queue stayed full")
        else:
            if thread is not None and thread.is_alive():
                try:
                    records.put(_STOP, timeout=self._shutdown_timeout_s)
                except queue.Full:
                    LOGGER.warning("Could not signal the dispatcher: callback queue stayed full")
                thread.join(self._shutdown_timeout_s)
                if thread.is_alive():
                    LOGGER.warning(
                        "Dispatcher did not stop within %.1fs; abandoning it",
                        self._shutdown_timeout_s,
                    )
            discarded = self._discard_pending(records)
        self._report_drops()
        if discarded:
            LOGGER.info("Discarded %d in-flight callback record(s)", discarded)
        self._thread = None
        self._queue = None
        self._registered = False

    def flush(self, timeout: float | None = None) -> bool:
        """Block until every record enqueued so far has been dispatched."""
        records = self._queue
        if records is None or not self.running:
            return True
        barrier = threading.Event()
        try:
            records.put(barrier, timeout=timeout)
        except queue.Full:
            return False
        return barrier.wait(timeout)

    def raise_if_failed(self) -> None:
        if self.fatal_error is not None:
            raise self.fatal_error

    def stats(self) -> BridgeStats:
        return BridgeStats(
            dispatched=self._dispatched,
            dropped=self._dropped,
            discarded=self._discarded,
            rejected=self._rejected,
        )

    # -- dispatch thread -------------------------------------------------------

    def _discard_pending(self, records: Any) -> int:
        discarded = 0
        while True:
            try:
                item = records.get_nowait()
            except queue.Empty:
                break
            if isinstance(item, threading.Event):
                item.set()
            elif isinstance(item, _Record):
                discarded += 1
        self._discarded += discarded
        return discarded

    def _report_drops(self) -> None:
        dropped = self._dropped
        if dropped > self._dropped_reported:
            LOGGER.warning(
                "Callback queue full; dropped %d record(s)", dropped - self._dropped_reported
            )
            self._dropped_reported = dropped

    def _dispatch_loop(self, records: Any, seeded: list[DeviceAttached]) -> None:
        for event in seeded:
            if self._stopping.is_set():
                break
            self._stream.publish(event)
        while True:
            item = records.get()
            if item is _STOP:
                return
            if isinstance(item, threading.Event):
                item.set()
                continue
            if self._stopping.is_set():
                self._discarded += 1
                continue
            self._report_drops()
            try:
                self._dispatch(item)
            except OwnershipViolationError as exc:
                LOGGER.critical("Ownership violation on the dispatch path: %s", exc)
                self.fatal_error = exc
                self._accepting = False
                self._discard_pending(records)
                return
            except Exception:
                LOGGER.exception("Dropping %s callback from device %s", item.kind.value, item.args[0])
                self._rejected += 1

    def _dispatch(self, record: _Record) -> None:
        event = self._normalize(record)
        if event is None:
            self._rejected += 1
            return
        self._apply(event)
        self._stream.publish(event)
        self._dispatched += 1

    def _normalize(self, record: _Record) -> DeviceEvent | None:
        device_id, *rest = record.args
        try:
            handle = DeviceHandle(device_id)
        except ValueError as exc:
            LOGGER.warning("Dropping %s callback: %s", record.kind.value, exc)
            return None

        common: dict[str, Any] = {
            "handle": handle,
            "sequence": record.sequence,
            "timestamp_ns": record.timestamp_ns,
        }
        if record.kind is CallbackKind.DEVICE_ATTACHED:
            return DeviceAttached(**common, info=self._describe(handle))
        if record.kind is CallbackKind.DEVICE_DETACHED:
            return DeviceDetached(**common, info=self._registry.get(handle))
        if record.kind is CallbackKind.BUTTON_TRANSLATED:
            button, value = rest
            try:
                button_id = ButtonId(button)
            except ValueError:
                LOGGER.warning("Dropping button event with unknown button id %s from %s", button, handle)
                return None
            return ButtonEvent(**common, button=button_id, pressed=value != 0)
        if record.kind is CallbackKind.BUTTON_RAW_HID:
            usage_page, usage, value = rest
            return RawHidEvent(**common, usage_page=usage_page, usage=usage, value=value)

        level, charging, low = rest
        try:
            status = BatteryStatus(level_percent=level, charging=bool(charging), low=bool(low))
        except ValueError as exc:
            LOGGER.warning("Dropping battery update from %s: %s", handle, exc)
            return None
        return BatteryEvent(**common, status=status)

    def _describe(self, handle: DeviceHandle) -> DeviceInfo:
        device_id = handle.device_id
        try:
            for info in self._boundary.attached_devices():
                if info.handle == handle:
                    return info
        except ValueError as exc:
            LOGGER.warning("Enumeration returned malformed data while describing %s: %s", handle, exc)
        LOGGER.debug("Device %s missing from enumeration; querying accessors", handle)
        return DeviceInfo(
            handle=handle,
            name=self._boundary.device_name(device_id) or "",
            serial_number=self._boundary.serial_number(device_id),
            vendor_id=0,
            product_id=0,
            is_dongle=self._sdk.is_dongle(device_id),
        )

    def _apply(self, event: DeviceEvent) -> None:
        if isinstance(event, DeviceAttached):
            self._registry.attach(event.info)
        elif isinstance(event, DeviceDetached):
            self._registry.detach(event.handle)
        elif isinstance(event, BatteryEvent):
            if not self._registry.update_battery(event.handle, event.status):
                LOGGER.debug("Battery update for unattached device %s", event.handle)
