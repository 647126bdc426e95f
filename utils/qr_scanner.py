# =============================================================================
# 📷 utils/qr_scanner.py
# -----------------------------------------------------------------------------
# Kamera-Scanner als Zustandsautomat:
#   IDLE → REQUESTING → STREAMING → DETECTING → STOPPED
#   Endzustände bei Fehlern: PERMISSION_DENIED, UNSUPPORTED
# Die Abfrage-Schleife läuft als asyncio-Task und wird bei stop() abgebrochen.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, List, Optional

from utils import settings
from utils.camera import (
    CameraError,
    CameraNotFoundError,
    CameraPermissionError,
    DecodedSymbol,
    DeviceInfo,
    FrameDecoder,
    MediaConstraints,
    MediaDevices,
    MediaStream,
    MediaStreamTrack,
    OpenCVQRDetector,
    PermissionState,
    ZBarFrameDecoder,
)
from utils.qr_schema import now_ms

logger = logging.getLogger(__name__)

PERMISSION_DENIED_MESSAGE = "Camera permission denied. Please allow camera access and try again."
NOT_FOUND_MESSAGE = "No camera found on this device."
UNSUPPORTED_MESSAGE = "Camera access not supported on this device"


class ScannerState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    DETECTING = "detecting"
    STOPPED = "stopped"
    PERMISSION_DENIED = "permission_denied"
    UNSUPPORTED = "unsupported"


_ACTIVE_STATES = (ScannerState.REQUESTING, ScannerState.STREAMING, ScannerState.DETECTING)


@dataclass(frozen=True)
class ScanRecord:
    raw_data: str
    timestamp: int = field(default_factory=now_ms)
    format: str = "qr_code"


@dataclass(frozen=True)
class ScannerOptions:
    facing_mode: str = "environment"
    width: int = 1280
    height: int = 720
    scan_delay: float = settings.SCAN_DELAY_MS / 1000
    device_id: Optional[str] = None


class QRScannerEngine:
    """
    Fordert eine Kamera an, liest in festem Abstand Frames und meldet jeden
    dekodierten Inhalt als ScanRecord über on_scan.

    Fehler werden nie an den Aufrufer geworfen, sondern über on_error
    (und on_permission_denied) gemeldet.
    """

    def __init__(
        self,
        devices: MediaDevices,
        on_scan: Callable[[ScanRecord], None],
        *,
        on_error: Optional[Callable[[str], None]] = None,
        on_permission_denied: Optional[Callable[[], None]] = None,
        options: Optional[ScannerOptions] = None,
        native_detector: Optional[FrameDecoder] = None,
        frame_decoder: Optional[FrameDecoder] = None,
        use_native: bool = True,
    ):
        self.devices = devices
        self.on_scan = on_scan
        self.on_error = on_error
        self.on_permission_denied = on_permission_denied
        self.options = options or ScannerOptions()
        if native_detector is None and use_native:
            native_detector = OpenCVQRDetector()
        self.native_detector = native_detector
        self.frame_decoder = frame_decoder or ZBarFrameDecoder()

        self.state = ScannerState.IDLE
        self.error: Optional[str] = None
        self.available_devices: List[DeviceInfo] = []
        self.torch_supported = False
        self.torch_on = False
        self.last_record: Optional[ScanRecord] = None

        self._stream: Optional[MediaStream] = None
        self._task: Optional[asyncio.Task] = None
        # jede start()/stop()-Runde bekommt eine neue Session-Nummer
        self._session = 0

    # -------------------------------------------------------------------------
    # 🔹 Status
    # -------------------------------------------------------------------------
    @property
    def is_scanning(self) -> bool:
        return self.state in _ACTIVE_STATES

    @property
    def has_multiple_cameras(self) -> bool:
        return len(self.available_devices) > 1

    def _video_track(self) -> Optional[MediaStreamTrack]:
        if self._stream is None:
            return None
        tracks = self._stream.get_video_tracks()
        return tracks[0] if tracks else None

    def _emit_error(self, message: str) -> None:
        self.error = message
        logger.warning(f"⚠️ Scanner: {message}")
        if self.on_error:
            self.on_error(message)

    # -------------------------------------------------------------------------
    # ▶️ Start
    # -------------------------------------------------------------------------
    async def start(self) -> None:
        if self.is_scanning:
            return
        if not self.devices.supported:
            self.state = ScannerState.UNSUPPORTED
            self._emit_error(UNSUPPORTED_MESSAGE)
            return

        self._session += 1
        session = self._session
        self.state = ScannerState.REQUESTING
        self.error = None

        try:
            devices = await self.devices.enumerate_devices()
            self.available_devices = [d for d in devices if d.kind == "videoinput"]
            if not self.available_devices:
                raise CameraNotFoundError("Requested device not found")
            stream = await self.devices.get_user_media(
                MediaConstraints(
                    facing_mode=self.options.facing_mode,
                    width=self.options.width,
                    height=self.options.height,
                    device_id=self.options.device_id,
                )
            )
        except CameraPermissionError:
            if session == self._session:
                self.state = ScannerState.PERMISSION_DENIED
                if self.on_permission_denied:
                    self.on_permission_denied()
                self._emit_error(PERMISSION_DENIED_MESSAGE)
            return
        except CameraNotFoundError:
            if session == self._session:
                self.state = ScannerState.IDLE
                self._emit_error(NOT_FOUND_MESSAGE)
            return
        except Exception as e:
            if session == self._session:
                self.state = ScannerState.IDLE
                self._emit_error(f"Camera error: {e}")
            return

        # stop() während der Anfrage: Stream sofort wieder freigeben
        if session != self._session:
            for track in stream.get_tracks():
                track.stop()
            return

        self._stream = stream
        track = self._video_track()
        capabilities = track.get_capabilities() if track is not None else {}
        self.torch_supported = bool(capabilities.get("torch"))
        self.torch_on = False
        self.state = ScannerState.STREAMING
        logger.info(f"📷 Kamera-Stream aktiv (torch={self.torch_supported})")

        self._task = asyncio.create_task(self._poll(session))
        self.state = ScannerState.DETECTING

    # -------------------------------------------------------------------------
    # 🔁 Abfrage-Schleife
    # -------------------------------------------------------------------------
    async def _detect_once(self) -> List[DecodedSymbol]:
        track = self._video_track()
        if track is None:
            return []
        frame = await track.read_frame()
        if frame is None:
            return []
        detector = self.native_detector or self.frame_decoder
        return detector.decode(frame)

    async def _poll(self, session: int) -> None:
        while session == self._session:
            await asyncio.sleep(self.options.scan_delay)
            if session != self._session:
                return
            try:
                symbols = await self._detect_once()
            except Exception as e:
                logger.warning(f"⚠️ Frame konnte nicht gelesen werden: {e}")
                continue

            # Ergebnis verwerfen, wenn inzwischen gestoppt wurde
            if session != self._session or not symbols:
                continue

            record = ScanRecord(raw_data=symbols[0].data, format=symbols[0].format)
            self.last_record = record
            logger.info(f"✅ QR-Code erkannt ({record.format})")
            try:
                self.on_scan(record)
            except Exception as e:
                logger.error(f"❌ Fehler im Scan-Callback: {e}")

    # -------------------------------------------------------------------------
    # ⏹️ Stop
    # -------------------------------------------------------------------------
    def stop(self) -> None:
        """Gültig aus jedem Zustand; mehrfacher Aufruf ist harmlos."""
        self._session += 1

        task, self._task = self._task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

        stream, self._stream = self._stream, None
        if stream is not None:
            for track in stream.get_tracks():
                track.stop()

        self.torch_on = False
        if self.state != ScannerState.UNSUPPORTED:
            self.state = ScannerState.STOPPED

    async def __aenter__(self) -> "QRScannerEngine":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.stop()

    # -------------------------------------------------------------------------
    # 🔦 Taschenlampe / 🔄 Kamera wechseln
    # -------------------------------------------------------------------------
    async def toggle_torch(self) -> bool:
        track = self._video_track()
        if not self.torch_supported or track is None:
            return False
        wanted = not self.torch_on
        try:
            await track.apply_constraints({"torch": wanted})
        except CameraError as e:
            logger.warning(f"⚠️ Taschenlampe nicht umschaltbar: {e}")
            return False
        self.torch_on = wanted
        return True

    async def switch_camera(self, device_id: str) -> None:
        if not self.devices.supported:
            return
        self.options = replace(self.options, device_id=device_id)
        if self.is_scanning:
            self.stop()
            await self.start()


# =============================================================================
# 🔐 Kamera-Berechtigung
# =============================================================================

class ScannerPermission:
    def __init__(self, devices: MediaDevices):
        self.devices = devices
        self.supported = bool(devices.supported)
        self.state = PermissionState.UNKNOWN
        self.error: Optional[str] = None

    async def refresh(self) -> PermissionState:
        if not self.supported:
            self.error = UNSUPPORTED_MESSAGE
            return self.state
        try:
            self.state = await self.devices.query_permission()
            self.error = None
        except CameraError as e:
            self.state = PermissionState.UNKNOWN
            self.error = str(e)
        return self.state

    async def request_permission(self) -> bool:
        """Öffnet kurz einen Stream und gibt ihn sofort wieder frei."""
        if not self.supported:
            self.error = UNSUPPORTED_MESSAGE
            return False
        try:
            stream = await self.devices.get_user_media(MediaConstraints())
        except CameraPermissionError:
            self.state = PermissionState.DENIED
            self.error = PERMISSION_DENIED_MESSAGE
            return False
        except CameraError as e:
            self.error = str(e)
            return False

        for track in stream.get_tracks():
            track.stop()
        self.state = PermissionState.GRANTED
        self.error = None
        return True
