from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from utils.camera import (
    CameraNotFoundError,
    CameraPermissionError,
    DecodedSymbol,
    DeviceInfo,
    MediaConstraints,
    PermissionState,
)
from utils.qr_scanner import (
    NOT_FOUND_MESSAGE,
    PERMISSION_DENIED_MESSAGE,
    UNSUPPORTED_MESSAGE,
    QRScannerEngine,
    ScannerOptions,
    ScannerPermission,
    ScannerState,
)

FAST = ScannerOptions(scan_delay=0.001)


# --------------------------------------------------------------------------- #
# 🧪 Fakes
# --------------------------------------------------------------------------- #

class FakeTrack:
    kind = "video"

    def __init__(self, device_id: str = "0", torch: bool = False):
        self.device_id = device_id
        self.torch = torch
        self.stopped = False
        self.applied: List[Dict[str, Any]] = []

    def stop(self) -> None:
        self.stopped = True

    def get_capabilities(self) -> Dict[str, Any]:
        return {"torch": self.torch}

    async def apply_constraints(self, constraints: Dict[str, Any]) -> None:
        self.applied.append(constraints)

    async def read_frame(self) -> Optional[str]:
        return None if self.stopped else "frame"


class FakeStream:
    def __init__(self, tracks):
        self.tracks = tracks

    def get_tracks(self):
        return list(self.tracks)

    def get_video_tracks(self):
        return [t for t in self.tracks if t.kind == "video"]


class FakeDevices:
    def __init__(self, supported=True, devices=None, error: Optional[Exception] = None, torch=False):
        self.supported = supported
        self.devices = devices if devices is not None else [DeviceInfo("0"), DeviceInfo("1")]
        self.error = error
        self.torch = torch
        self.requests: List[MediaConstraints] = []
        self.tracks: List[FakeTrack] = []
        self.gate: Optional[asyncio.Event] = None

    async def enumerate_devices(self):
        return list(self.devices)

    async def get_user_media(self, constraints):
        self.requests.append(constraints)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        track = FakeTrack(constraints.device_id or "0", torch=self.torch)
        self.tracks.append(track)
        return FakeStream([track])

    async def query_permission(self):
        return PermissionState.GRANTED


class FakeDecoder:
    def __init__(self, outputs):
        self.outputs = list(outputs)
        self.calls = 0
        self.hook = None

    def decode(self, frame):
        self.calls += 1
        if self.hook:
            self.hook()
        item = self.outputs.pop(0) if self.outputs else []
        if isinstance(item, Exception):
            raise item
        return [DecodedSymbol(text) for text in item]


def _engine(devices, decoder, **kwargs):
    scans, errors, denied = [], [], []
    engine = QRScannerEngine(
        devices,
        on_scan=scans.append,
        on_error=errors.append,
        on_permission_denied=lambda: denied.append(True),
        options=kwargs.pop("options", FAST),
        native_detector=decoder,
        **kwargs,
    )
    return engine, scans, errors, denied


async def _wait_for(predicate, timeout: float = 1.0) -> None:
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout)


# --------------------------------------------------------------------------- #
# ▶️ Start / Scan
# --------------------------------------------------------------------------- #

@pytest.mark.asyncio
async def test_start_detects_and_emits_scan_record():
    devices = FakeDevices()
    engine, scans, errors, _ = _engine(devices, FakeDecoder([[], ["celo:pay?address=x"]]))

    await engine.start()
    assert engine.state == ScannerState.DETECTING
    await _wait_for(lambda: scans)
    engine.stop()

    assert scans[0].raw_data == "celo:pay?address=x"
    assert scans[0].format == "qr_code"
    assert scans[0].timestamp > 0
    assert errors == []
    assert devices.requests[0].facing_mode == "environment"


@pytest.mark.asyncio
async def test_engine_keeps_scanning_after_success():
    engine, scans, _, _ = _engine(FakeDevices(), FakeDecoder([["a"], ["b"]]))
    await engine.start()
    await _wait_for(lambda: len(scans) == 2)
    assert engine.state == ScannerState.DETECTING
    engine.stop()


@pytest.mark.asyncio
async def test_frame_error_does_not_kill_loop():
    decoder = FakeDecoder([RuntimeError("bad frame"), ["ok"]])
    engine, scans, errors, _ = _engine(FakeDevices(), decoder)
    await engine.start()
    await _wait_for(lambda: scans)
    engine.stop()
    assert scans[0].raw_data == "ok"
    assert errors == []


# --------------------------------------------------------------------------- #
# ⏹️ Stop
# --------------------------------------------------------------------------- #

@pytest.mark.asyncio
async def test_stop_releases_every_track_and_is_idempotent():
    devices = FakeDevices()
    engine, _, _, _ = _engine(devices, FakeDecoder([]))
    await engine.start()
    task = engine._task

    engine.stop()
    engine.stop()
    await asyncio.gather(task, return_exceptions=True)

    assert engine.state == ScannerState.STOPPED
    assert all(t.stopped for t in devices.tracks)
    assert task.done()


@pytest.mark.asyncio
async def test_stop_from_idle():
    engine, _, _, _ = _engine(FakeDevices(), FakeDecoder([]))
    engine.stop()
    assert engine.state == ScannerState.STOPPED


@pytest.mark.asyncio
async def test_stop_while_requesting_releases_late_stream():
    devices = FakeDevices()
    devices.gate = asyncio.Event()
    engine, _, _, _ = _engine(devices, FakeDecoder([]))

    starting = asyncio.create_task(engine.start())
    await _wait_for(lambda: devices.requests)
    assert engine.state == ScannerState.REQUESTING

    engine.stop()
    devices.gate.set()
    await starting

    assert engine.state == ScannerState.STOPPED
    assert devices.tracks and all(t.stopped for t in devices.tracks)
    assert engine._task is None


@pytest.mark.asyncio
async def test_decode_finishing_after_stop_is_discarded():
    decoder = FakeDecoder([["late"], ["later"]])
    engine, scans, _, _ = _engine(FakeDevices(), decoder)
    decoder.hook = engine.stop

    await engine.start()
    await _wait_for(lambda: decoder.calls >= 1)
    await asyncio.sleep(0.01)

    assert scans == []
    assert engine.state == ScannerState.STOPPED


@pytest.mark.asyncio
async def test_async_context_manager_releases_camera():
    devices = FakeDevices()
    engine, _, _, _ = _engine(devices, FakeDecoder([]))
    async with engine:
        assert engine.is_scanning
    assert engine.state == ScannerState.STOPPED
    assert all(t.stopped for t in devices.tracks)


# --------------------------------------------------------------------------- #
# ❌ Fehler
# --------------------------------------------------------------------------- #

@pytest.mark.asyncio
async def test_permission_denied():
    engine, _, errors, denied = _engine(FakeDevices(error=CameraPermissionError("NotAllowedError")), FakeDecoder([]))
    await engine.start()
    assert engine.state == ScannerState.PERMISSION_DENIED
    assert denied == [True]
    assert errors == [PERMISSION_DENIED_MESSAGE]


@pytest.mark.asyncio
async def test_no_camera_returns_to_idle():
    engine, _, errors, _ = _engine(FakeDevices(devices=[]), FakeDecoder([]))
    await engine.start()
    assert engine.state == ScannerState.IDLE
    assert errors == [NOT_FOUND_MESSAGE]


@pytest.mark.asyncio
async def test_not_found_from_stream_request():
    engine, _, errors, _ = _engine(FakeDevices(error=CameraNotFoundError("gone")), FakeDecoder([]))
    await engine.start()
    assert errors == [NOT_FOUND_MESSAGE]


@pytest.mark.asyncio
async def test_other_errors_are_reported_and_retryable():
    devices = FakeDevices(error=RuntimeError("device busy"))
    engine, _, errors, _ = _engine(devices, FakeDecoder([]))
    await engine.start()
    assert engine.state == ScannerState.IDLE
    assert errors == ["Camera error: device busy"]

    devices.error = None
    await engine.start()
    assert engine.state == ScannerState.DETECTING
    engine.stop()


@pytest.mark.asyncio
async def test_unsupported_platform():
    engine, _, errors, _ = _engine(FakeDevices(supported=False), FakeDecoder([]))
    await engine.start()
    assert engine.state == ScannerState.UNSUPPORTED
    assert errors == [UNSUPPORTED_MESSAGE]
    engine.stop()
    assert engine.state == ScannerState.UNSUPPORTED


# --------------------------------------------------------------------------- #
# 🔦 Taschenlampe / 🔄 Kamera wechseln
# --------------------------------------------------------------------------- #

@pytest.mark.asyncio
async def test_toggle_torch_when_supported():
    devices = FakeDevices(torch=True)
    engine, _, _, _ = _engine(devices, FakeDecoder([]))
    await engine.start()
    assert await engine.toggle_torch() is True
    assert engine.torch_on is True
    assert devices.tracks[0].applied == [{"torch": True}]
    engine.stop()


@pytest.mark.asyncio
async def test_toggle_torch_noop_when_unsupported():
    engine, _, _, _ = _engine(FakeDevices(torch=False), FakeDecoder([]))
    await engine.start()
    assert await engine.toggle_torch() is False
    engine.stop()


@pytest.mark.asyncio
async def test_switch_camera_restarts_on_new_device():
    devices = FakeDevices()
    engine, _, _, _ = _engine(devices, FakeDecoder([]))
    await engine.start()
    assert engine.has_multiple_cameras

    await engine.switch_camera("1")
    assert devices.requests[-1].device_id == "1"
    assert devices.tracks[0].stopped is True
    assert engine.state == ScannerState.DETECTING
    engine.stop()


# --------------------------------------------------------------------------- #
# 🔐 Berechtigung
# --------------------------------------------------------------------------- #

@pytest.mark.asyncio
async def test_request_permission_opens_and_releases_stream():
    devices = FakeDevices()
    permission = ScannerPermission(devices)
    assert await permission.request_permission() is True
    assert permission.state == PermissionState.GRANTED
    assert all(t.stopped for t in devices.tracks)


@pytest.mark.asyncio
async def test_request_permission_denied():
    permission = ScannerPermission(FakeDevices(error=CameraPermissionError("denied")))
    assert await permission.request_permission() is False
    assert permission.state == PermissionState.DENIED


@pytest.mark.asyncio
async def test_refresh_permission_unsupported():
    permission = ScannerPermission(FakeDevices(supported=False))
    assert await permission.refresh() == PermissionState.UNKNOWN
    assert permission.error == UNSUPPORTED_MESSAGE
