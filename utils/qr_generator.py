# =============================================================================
# 🧠 QR-Code Generator – PianoStyle QR
# -----------------------------------------------------------------------------
# Rendert einen Datenstring als PNG (Bytes + Data-URL) und stellt Kopieren /
# Herunterladen als Seiteneffekte für den Aufrufer bereit.
# =============================================================================

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, replace
from enum import Enum
from io import BytesIO
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Tuple, Union

import qrcode
import qrcode.image.styles.moduledrawers as mod
from qrcode.exceptions import DataOverflowError
from qrcode.image.styledpil import StyledPilImage
from qrcode.image.styles.colormasks import SolidFillColorMask
from PIL import Image, ImageColor

from utils.qr_codec import encode_payload, encode_payment_uri
from utils.qr_config import (
    ERROR_CORRECTION_LEVELS,
    MODULE_STYLES,
    PRINT_ERROR_CORRECTION,
    QR_DEFAULT_STYLE,
)
from utils.qr_schema import IdentityPayload, Payment

# ---------------------------------------------------------------------------
# ⚙️ Logging konfigurieren
# ---------------------------------------------------------------------------
logger = logging.getLogger(__name__)


class QRGenerationError(str, Enum):
    EMPTY_INPUT = "empty_input"
    ENCODING_FAILURE = "encoding_failure"
    INVALID_OPTIONS = "invalid_options"


@dataclass(frozen=True)
class QRRenderOptions:
    size: int = QR_DEFAULT_STYLE["size"]
    error_correction: str = QR_DEFAULT_STYLE["error_correction"]
    dark_color: str = QR_DEFAULT_STYLE["dark_color"]
    light_color: str = QR_DEFAULT_STYLE["light_color"]
    margin: int = QR_DEFAULT_STYLE["margin"]
    module_style: str = QR_DEFAULT_STYLE["module_style"]


@dataclass(frozen=True)
class QRRenderResult:
    data: str
    options: QRRenderOptions
    png_bytes: bytes = b""
    error: Optional[QRGenerationError] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def data_url(self) -> str:
        if not self.png_bytes:
            return ""
        return "data:image/png;base64," + base64.b64encode(self.png_bytes).decode("ascii")


def _validate_options(options: QRRenderOptions) -> Optional[str]:
    if isinstance(options.size, bool) or not isinstance(options.size, int) or options.size <= 0:
        return f"size must be a positive pixel dimension, got {options.size!r}"
    if options.error_correction not in ERROR_CORRECTION_LEVELS:
        return f"unknown error correction level {options.error_correction!r}"
    if options.margin < 0:
        return "margin must not be negative"
    if options.module_style not in MODULE_STYLES:
        return f"unknown module style {options.module_style!r}"
    for color in (options.dark_color, options.light_color):
        try:
            ImageColor.getrgb(color)
        except ValueError:
            return f"invalid color {color!r}"
    return None


# ---------------------------------------------------------------------------
# 🧩 Hauptfunktion: generate_qr
# ---------------------------------------------------------------------------

def generate_qr(data: str, options: Optional[QRRenderOptions] = None) -> QRRenderResult:
    """
    Generiert einen QR-Code als PNG.
    Fehler werden nicht geworfen, sondern als QRRenderResult.error zurückgegeben.
    """
    options = options or QRRenderOptions()

    if not data:
        return QRRenderResult(data="", options=options,
                              error=QRGenerationError.EMPTY_INPUT, message="No data provided")

    problem = _validate_options(options)
    if problem:
        return QRRenderResult(data=data, options=options,
                              error=QRGenerationError.INVALID_OPTIONS, message=problem)

    try:
        # === 1️⃣ QR-Code Basis ===
        qr = qrcode.QRCode(
            version=None,
            error_correction=ERROR_CORRECTION_LEVELS[options.error_correction],
            box_size=10,
            border=options.margin,
        )
        qr.add_data(data)
        qr.make(fit=True)

        # === 2️⃣ Modul-Stil ===
        module_drawer = {
            "square": mod.SquareModuleDrawer(),
            "rounded": mod.RoundedModuleDrawer(),
            "dots": mod.CircleModuleDrawer(),
            "soft": mod.GappedSquareModuleDrawer(),
        }[options.module_style]

        # === 3️⃣ Farben ===
        color_mask = SolidFillColorMask(
            front_color=ImageColor.getrgb(options.dark_color),
            back_color=ImageColor.getrgb(options.light_color),
        )

        # === 4️⃣ Bild erzeugen & skalieren ===
        img = qr.make_image(
            image_factory=StyledPilImage,
            module_drawer=module_drawer,
            color_mask=color_mask,
        ).convert("RGB")
        # NEAREST: Modulkanten bleiben scharf
        img = img.resize((options.size, options.size), Image.Resampling.NEAREST)

        buffer = BytesIO()
        img.save(buffer, format="PNG")
    except (DataOverflowError, ValueError, OSError) as e:
        logger.warning(f"⚠️ QR-Code konnte nicht erzeugt werden: {e}")
        return QRRenderResult(data=data, options=options,
                              error=QRGenerationError.ENCODING_FAILURE,
                              message=f"Failed to generate QR code: {e}")

    logger.info(f"✅ QR-Code erzeugt ({options.size}px, Level {options.error_correction})")
    return QRRenderResult(data=data, options=options, png_bytes=buffer.getvalue())


def generate_payment_qr(
    payment: Union[Payment, Mapping[str, Any]],
    options: Optional[QRRenderOptions] = None,
) -> Tuple[str, QRRenderResult]:
    """
    Kodiert eine Zahlungsanforderung als URI und rendert sie (Standard: Level H).
    Ungültige Zahlungsdaten werfen PaymentInputError.
    """
    uri = encode_payment_uri(payment)
    options = options or QRRenderOptions(error_correction=PRINT_ERROR_CORRECTION)
    return uri, generate_qr(uri, options)


def generate_payload_qr(
    payload: IdentityPayload,
    options: Optional[QRRenderOptions] = None,
) -> Tuple[str, QRRenderResult]:
    text = encode_payload(payload)
    options = options or QRRenderOptions(error_correction=PRINT_ERROR_CORRECTION)
    return text, generate_qr(text, options)


# =============================================================================
# 🖼️ QRCodeImage – Komponente mit Kopieren / Download
# =============================================================================

class Clipboard(Protocol):
    def write_text(self, text: str) -> None: ...


class QRCodeImage:
    """
    Hält Daten + Render-Optionen und rendert neu, sobald sich eines davon ändert.
    Kopieren und Herunterladen werden über übergebene Kollaboratoren ausgeführt.
    """

    def __init__(
        self,
        data: str,
        options: Optional[QRRenderOptions] = None,
        *,
        show_copy_button: bool = True,
        allow_download: bool = False,
        download_filename: str = "qrcode",
        on_copy: Optional[Callable[[], None]] = None,
        on_download: Optional[Callable[[], None]] = None,
    ):
        self._data = data
        self._options = options or QRRenderOptions()
        self.show_copy_button = show_copy_button
        self.allow_download = allow_download
        self.download_filename = download_filename
        self.on_copy = on_copy
        self.on_download = on_download
        self._cache: Dict[Tuple[str, QRRenderOptions], QRRenderResult] = {}

    @property
    def data(self) -> str:
        return self._data

    @data.setter
    def data(self, value: str) -> None:
        self._data = value

    @property
    def options(self) -> QRRenderOptions:
        return self._options

    @options.setter
    def options(self, value: QRRenderOptions) -> None:
        self._options = value

    def update(self, data: Optional[str] = None, **option_changes: Any) -> QRRenderResult:
        if data is not None:
            self._data = data
        if option_changes:
            self._options = replace(self._options, **option_changes)
        return self.render()

    def render(self) -> QRRenderResult:
        key = (self._data, self._options)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        result = generate_qr(self._data, self._options)
        # nur das aktuelle Eingabe-Tupel behalten; Fehler werden nicht gecacht (retry)
        self._cache = {key: result} if result.ok else {}
        return result

    def copy(self, clipboard: Clipboard) -> bool:
        """Kopiert den Quell-String (nicht das Bild) in die Zwischenablage."""
        if not self.show_copy_button or not self._data:
            return False
        try:
            clipboard.write_text(self._data)
        except Exception as e:
            logger.error(f"❌ Kopieren in die Zwischenablage fehlgeschlagen: {e}")
            return False
        if self.on_copy:
            self.on_copy()
        return True

    def download(self, directory: Union[str, Path] = ".", filename: Optional[str] = None) -> Optional[Path]:
        """Schreibt das gerenderte PNG als Datei und gibt den Pfad zurück."""
        if not self.allow_download:
            return None
        result = self.render()
        if not result.ok:
            return None
        output_dir = Path(directory)
        output_dir.mkdir(parents=True, exist_ok=True)
        file_path = output_dir / f"{filename or self.download_filename}.png"
        file_path.write_bytes(result.png_bytes)
        logger.info(f"💾 QR-Code gespeichert unter: {file_path}")
        if self.on_download:
            self.on_download()
        return file_path
