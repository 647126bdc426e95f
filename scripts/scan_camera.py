#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Script: scan_camera.py
Project: PianoStyle QR
Description:
    Startet den QR-Scanner an der lokalen Webcam und gibt jedes erkannte
    Ergebnis (Zahlung, Venue, Profil, Adresse, Deep Link) auf der Konsole aus.
    Beenden mit Strg+C.
"""

import argparse
import asyncio
import json
import logging
import os
import sys

# ─────────────────────────────────────────────
# 🧩 Projektpfad einbinden
# ─────────────────────────────────────────────
BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.append(BASE_DIR)

# ─────────────────────────────────────────────
# 📦 Interne Importe
# ─────────────────────────────────────────────
from utils.camera import OpenCVMediaDevices
from utils.qr_codec import from_base_units
from utils.qr_scanner import QRScannerEngine, ScannerOptions
from utils.scan_router import ScanResultRouter

logger = logging.getLogger("scan_camera")


def _print(kind: str, value) -> None:
    print(json.dumps({"kind": kind, "value": value}, ensure_ascii=False, default=str))


def _on_payment(payment) -> None:
    data = payment.to_dict()
    # celo:pay trägt Basiseinheiten; für die Anzeige zurückrechnen
    if payment.amount and payment.amount.isdigit():
        data["displayAmount"] = from_base_units(payment.amount)
    _print("payment", data)


async def run(device_id, delay: float, once: bool) -> None:
    stop_event = asyncio.Event()

    def _finish_if_once(_value=None) -> None:
        if once:
            stop_event.set()

    router = ScanResultRouter(
        on_payment=lambda p: (_on_payment(p), _finish_if_once()),
        on_wallet_address=lambda a: (_print("address", a), _finish_if_once()),
        on_venue=lambda v: (_print("venue", v.to_dict()), _finish_if_once()),
        on_user_profile=lambda u: (_print("user", u.to_dict()), _finish_if_once()),
        on_deep_link=lambda d: (_print("deep_link", d.navigate_to or d.url or d.identifier), _finish_if_once()),
        on_error=lambda msg: _print("error", msg),
    )
    engine = QRScannerEngine(
        OpenCVMediaDevices(),
        on_scan=router.handle_scan,
        options=ScannerOptions(scan_delay=delay, device_id=device_id),
    )
    router.attach(engine)

    async with engine:
        if not engine.is_scanning:
            logger.error(f"❌ Scanner nicht gestartet: {engine.error}")
            return
        logger.info("📷 Scanner läuft – QR-Code vor die Kamera halten")
        await stop_event.wait()


def main() -> None:
    parser = argparse.ArgumentParser(description="PianoStyle QR-Scanner (Webcam)")
    parser.add_argument("--device", default=None, help="Kamera-Index, z. B. 0 für /dev/video0")
    parser.add_argument("--delay", type=float, default=0.5, help="Abstand zwischen zwei Frames in Sekunden")
    parser.add_argument("--once", action="store_true", help="Nach dem ersten Treffer beenden")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    try:
        asyncio.run(run(args.device, args.delay, args.once))
    except KeyboardInterrupt:
        logger.info("👋 Scanner beendet")


if __name__ == "__main__":
    main()
