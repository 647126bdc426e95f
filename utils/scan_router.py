"""
Leitet dekodierte Scans an die passenden Callbacks weiter.

Jeder Scan löst genau einen primären Callback aus (plus on_payment als
sekundäres Event, wenn ein Venue-/Profil-Payload eine Zahlung enthält).
Nach jedem Scan gilt eine Abklingzeit, in der weitere Scans ignoriert werden.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from typing import Callable, Deque, List, Optional, Union, assert_never

from utils import settings
from utils.qr_codec import (
    AddressScan,
    DeepLinkScan,
    PaymentScan,
    ScanResult,
    UnrecognizedScan,
    UserScan,
    VenueScan,
    decode_scanned_text,
)
from utils.qr_scanner import PERMISSION_DENIED_MESSAGE, QRScannerEngine, ScanRecord
from utils.qr_schema import Payment, UserPayload, VenuePayload

logger = logging.getLogger(__name__)

PERMISSION_REQUIRED_MESSAGE = "Camera permission is required to scan QR codes"


class ScanResultRouter:
    def __init__(
        self,
        on_payment: Callable[[Payment], None],
        on_wallet_address: Optional[Callable[[str], None]] = None,
        on_venue: Optional[Callable[[VenuePayload], None]] = None,
        on_user_profile: Optional[Callable[[UserPayload], None]] = None,
        on_deep_link: Optional[Callable[[DeepLinkScan], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
        cooldown: float = settings.SCAN_COOLDOWN_MS / 1000,
        history_size: int = settings.SCAN_HISTORY_SIZE,
        auto_navigate: bool = False,
        navigator: Optional[Callable[[str], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.on_payment = on_payment
        self.on_wallet_address = on_wallet_address
        self.on_venue = on_venue
        self.on_user_profile = on_user_profile
        self.on_deep_link = on_deep_link
        self.on_error = on_error
        self.cooldown = cooldown
        self.auto_navigate = auto_navigate
        self.navigator = navigator
        self.clock = clock

        self.last_scan_result: Optional[str] = None
        self.is_processing = False
        self._history: Deque[ScanRecord] = deque(maxlen=history_size)
        self._cooldown_until: Optional[float] = None

    # 🔹 Status
    @property
    def scan_history(self) -> List[ScanRecord]:
        """Neueste Scans zuerst."""
        return list(self._history)

    @property
    def is_cooling_down(self) -> bool:
        return self._cooldown_until is not None and self.clock() < self._cooldown_until

    def clear_history(self) -> None:
        self._history.clear()
        self.last_scan_result = None

    # 🔹 Hauptfunktion
    def handle_scan(self, record: Union[ScanRecord, str]) -> Optional[ScanResult]:
        if self.is_processing or self.is_cooling_down:
            logger.debug("Scan ignoriert (Verarbeitung/Abklingzeit)")
            return None
        if isinstance(record, str):
            record = ScanRecord(raw_data=record)

        self.is_processing = True
        try:
            self.last_scan_result = record.raw_data
            self._history.appendleft(record)
            result = decode_scanned_text(record.raw_data, auto_navigate=self.auto_navigate)
            try:
                self._dispatch(result)
                if result.navigate_to and self.navigator:
                    self.navigator(result.navigate_to)
            except Exception as e:
                logger.error(f"❌ Fehler im Scan-Handler: {e}")
                self._report(f"Failed to process QR code: {e}")
            return result
        finally:
            self.is_processing = False
            self._cooldown_until = self.clock() + self.cooldown

    def _report(self, message: str) -> None:
        if self.on_error:
            self.on_error(message)

    def _dispatch(self, result: ScanResult) -> None:
        if isinstance(result, VenueScan):
            logger.info(f"🎹 Venue gescannt: {result.payload.data.slug}")
            if self.on_venue:
                self.on_venue(result.payload)
            if result.payment is not None:
                self.on_payment(result.payment)
        elif isinstance(result, UserScan):
            logger.info("👤 Profil gescannt")
            if self.on_user_profile:
                self.on_user_profile(result.payload)
            if result.payment is not None:
                self.on_payment(result.payment)
        elif isinstance(result, PaymentScan):
            logger.info("💸 Zahlungsanforderung gescannt")
            self.on_payment(result.payment)
        elif isinstance(result, DeepLinkScan):
            if self.on_deep_link:
                self.on_deep_link(result)
        elif isinstance(result, AddressScan):
            if self.on_wallet_address:
                self.on_wallet_address(result.address)
            else:
                self.on_payment(Payment(address=result.address))
        elif isinstance(result, UnrecognizedScan):
            self._report(result.message)
        else:
            assert_never(result)

    # 🔹 Adapter für QRScannerEngine
    def on_scan_error(self, message: str) -> None:
        # Berechtigungsfehler meldet bereits on_permission_denied
        if message != PERMISSION_DENIED_MESSAGE:
            self._report(message)

    def on_permission_denied(self) -> None:
        self._report(PERMISSION_REQUIRED_MESSAGE)

    def attach(self, engine: QRScannerEngine) -> QRScannerEngine:
        engine.on_scan = self.handle_scan
        engine.on_error = self.on_scan_error
        engine.on_permission_denied = self.on_permission_denied
        return engine
