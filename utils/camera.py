# =============================================================================
# 📷 utils/camera.py
# -----------------------------------------------------------------------------
# Kamera-Plattform für den Scanner: Geräte, Streams, Tracks und Frame-Decoder.
# Die Protokolle erlauben Fake-Geräte in Tests; OpenCVMediaDevices ist die
# echte Implementierung (cv2.VideoCapture, /dev/video*).
# =============================================================================

from __future__ import annotations

import asyncio
import glob
import logging
import os
import re
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)

QR_FORMAT = "qr_code"


# =============================================================================
# ❌ Fehler
# =============================================================================

class CameraError(Exception):
    """Basisklasse aller Kamera-Fehler."""


class CameraPermissionError(CameraError):
    pass


class CameraNotFoundError(CameraError):
    pass


class CameraStreamError(CameraError):
    pass


# =============================================================================
# 🧩 Typen & Protokolle
# =============================================================================

class PermissionState(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class DeviceInfo:
    device_id: str
    kind: str = "videoinput"
    label: str = ""


@dataclass(frozen=True)
class MediaConstraints:
    facing_mode: str = "environment"
    width: int = 1280
    height: int = 720
    device_id: Optional[str] = None


@dataclass(frozen=True)
class DecodedSymbol:
    data: str
    format: str = QR_FORMAT


class MediaStreamTrack(Protocol):
    kind: str
    device_id: str

    def stop(self) -> None: ...

    def get_capabilities(self) -> Dict[str, Any]: ...

    async def apply_constraints(self, constraints: Dict[str, Any]) -> None: ...

    async def read_frame(self) -> Optional[np.ndarray]: ...


class MediaStream(Protocol):
    def get_tracks(self) -> Sequence[MediaStreamTrack]: ...

    def get_video_tracks(self) -> Sequence[MediaStreamTrack]: ...


class MediaDevices(Protocol):
    supported: bool

    async def enumerate_devices(self) -> List[DeviceInfo]: ...

    async def get_user_media(self, constraints: MediaConstraints) -> MediaStream: ...

    async def query_permission(self) -> PermissionState: ...


class FrameDecoder(Protocol):
    def decode(self, frame: np.ndarray) -> List[DecodedSymbol]: ...


# =============================================================================
# 🔍 Decoder
# =============================================================================

def _to_gray(frame: np.ndarray) -> np.ndarray:
    if len(frame.shape) == 3:
        return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    return frame


class OpenCVQRDetector:
    """Schneller Pfad: cv2.QRCodeDetector (mehrere Codes, sonst einzeln)."""

    def __init__(self) -> None:
        self._detector = cv2.QRCodeDetector()

    def decode(self, frame: np.ndarray) -> List[DecodedSymbol]:
        try:
            ok, decoded_info, _, _ = self._detector.detectAndDecodeMulti(frame)
            if ok:
                texts = [d for d in decoded_info if d]
                if texts:
                    return [DecodedSymbol(t) for t in texts]
            text, _, _ = self._detector.detectAndDecode(frame)
        except cv2.error as e:
            logger.debug(f"OpenCV-Detektor: {e}")
            return []
        return [DecodedSymbol(text)] if text else []


class ZBarFrameDecoder:
    """Manueller Pfad: Graustufen-Frame + pyzbar."""

    def decode(self, frame: np.ndarray) -> List[DecodedSymbol]:
        # pyzbar lädt libzbar beim Import
        from pyzbar.pyzbar import ZBarSymbol
        from pyzbar.pyzbar import decode as decode_zbar

        symbols = []
        for result in decode_zbar(_to_gray(frame), symbols=[ZBarSymbol.QRCODE]):
            text = result.data.decode("utf-8", errors="replace")
            if text:
                symbols.append(DecodedSymbol(text))
        return symbols


def decode_image_bytes(image_bytes: bytes) -> List[DecodedSymbol]:
    """
    Dekodiert alle QR-Codes eines hochgeladenen Standbilds.
    Wirft ValueError bei nicht lesbaren Bilddaten.
    """
    buffer = np.frombuffer(image_bytes or b"", dtype=np.uint8)
    frame = cv2.imdecode(buffer, cv2.IMREAD_COLOR) if buffer.size else None
    if frame is None:
        raise ValueError("Unreadable image")

    # pyzbar nur, wenn OpenCV nichts findet
    symbols = OpenCVQRDetector().decode(frame) or ZBarFrameDecoder().decode(frame)
    seen: Dict[str, DecodedSymbol] = {}
    for symbol in symbols:
        seen.setdefault(symbol.data, symbol)
    logger.info(f"🖼️ {len(seen)} QR-Code(s) im Bild gefunden")
    return list(seen.values())


# =============================================================================
# 🎥 OpenCV-Implementierung
# =============================================================================

_VIDEO_NODE_RE = re.compile(r"/dev/video(\d+)$")


class OpenCVTrack:
    """
    Video-Track über cv2.VideoCapture.

    read() läuft in einem Worker-Thread und VideoCapture ist nicht
    thread-sicher: read und release laufen daher nur unter self._lock.
    Ist beim stop() noch ein read() aktiv, gibt dieser Worker die Kamera
    direkt danach frei.
    """

    kind = "video"

    def __init__(self, capture: "cv2.VideoCapture", device_id: str):
        self._capture = capture
        self._lock = threading.Lock()
        self._released = False
        self.device_id = device_id
        self.stopped = False

    def _try_release(self) -> None:
        if not self._lock.acquire(blocking=False):
            return  # der laufende read() gibt frei
        try:
            if not self._released:
                self._released = True
                self._capture.release()
                logger.info(f"🛑 Kamera {self.device_id} freigegeben")
        finally:
            self._lock.release()

    def stop(self) -> None:
        self.stopped = True
        self._try_release()

    def _read(self) -> Tuple[bool, Optional[np.ndarray]]:
        with self._lock:
            if self.stopped:
                return False, None
            ok, frame = self._capture.read()
        if self.stopped:
            self._try_release()
        return ok, frame

    def get_capabilities(self) -> Dict[str, Any]:
        # OpenCV bietet keine Taschenlampen-Steuerung
        with self._lock:
            if self._released:
                return {"torch": False}
            return {
                "torch": False,
                "width": int(self._capture.get(cv2.CAP_PROP_FRAME_WIDTH)),
                "height": int(self._capture.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            }

    async def apply_constraints(self, constraints: Dict[str, Any]) -> None:
        if "torch" in constraints:
            raise CameraStreamError("Torch is not supported by this camera")
        with self._lock:
            if self._released:
                raise CameraStreamError("Camera already released")
            if "width" in constraints:
                self._capture.set(cv2.CAP_PROP_FRAME_WIDTH, constraints["width"])
            if "height" in constraints:
                self._capture.set(cv2.CAP_PROP_FRAME_HEIGHT, constraints["height"])

    async def read_frame(self) -> Optional[np.ndarray]:
        if self.stopped:
            return None
        ok, frame = await asyncio.to_thread(self._read)
        return frame if ok and not self.stopped else None


class OpenCVStream:
    def __init__(self, tracks: Sequence[OpenCVTrack]):
        self._tracks = list(tracks)

    def get_tracks(self) -> List[OpenCVTrack]:
        return list(self._tracks)

    def get_video_tracks(self) -> List[OpenCVTrack]:
        return [t for t in self._tracks if t.kind == "video"]


class OpenCVMediaDevices:
    """Lokale Kameras über cv2.VideoCapture (Linux: /dev/video*)."""

    supported = True

    def __init__(self, device_glob: str = "/dev/video*"):
        self.device_glob = device_glob

    def _nodes(self) -> List[str]:
        nodes = [p for p in glob.glob(self.device_glob) if _VIDEO_NODE_RE.search(p)]
        return sorted(nodes, key=lambda p: int(_VIDEO_NODE_RE.search(p).group(1)))

    async def enumerate_devices(self) -> List[DeviceInfo]:
        return [
            DeviceInfo(device_id=_VIDEO_NODE_RE.search(node).group(1), label=node)
            for node in self._nodes()
        ]

    async def query_permission(self) -> PermissionState:
        nodes = self._nodes()
        if not nodes:
            return PermissionState.UNKNOWN
        if any(os.access(node, os.R_OK | os.W_OK) for node in nodes):
            return PermissionState.GRANTED
        return PermissionState.DENIED

    async def get_user_media(self, constraints: MediaConstraints) -> OpenCVStream:
        devices = await self.enumerate_devices()
        if not devices:
            raise CameraNotFoundError("Requested device not found")

        if constraints.device_id is not None:
            matches = [d for d in devices if d.device_id == constraints.device_id]
            if not matches:
                raise CameraNotFoundError(f"Camera {constraints.device_id} not found")
            device = matches[0]
        else:
            device = devices[0]

        if not os.access(device.label, os.R_OK | os.W_OK):
            raise CameraPermissionError(f"Permission denied: {device.label}")

        capture = await asyncio.to_thread(cv2.VideoCapture, int(device.device_id))
        if not capture.isOpened():
            capture.release()
            raise CameraStreamError(f"Could not open {device.label}")

        capture.set(cv2.CAP_PROP_FRAME_WIDTH, constraints.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, constraints.height)
        logger.info(f"🎥 Kamera geöffnet: {device.label}")
        return OpenCVStream([OpenCVTrack(capture, device.device_id)])
