# routes/scan.py
# =============================================================================
# 🔎 Scan-Auswertung: Text dekodieren oder Bild hochladen
# =============================================================================

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, File, HTTPException, UploadFile
from pydantic import BaseModel, ConfigDict, Field

from utils.camera import decode_image_bytes
from utils.qr_codec import decode_scanned_text, scan_result_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scan", tags=["Scan"])


class DecodeIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    raw: str
    auto_navigate: bool = Field(default=False, alias="autoNavigate")


@router.post("/decode")
def decode_text(body: DecodeIn) -> dict[str, Any]:
    result = decode_scanned_text(body.raw, auto_navigate=body.auto_navigate)
    return scan_result_to_dict(result)


@router.post("/image")
async def decode_image(file: UploadFile = File(...)) -> dict[str, Any]:
    """Dekodiert alle QR-Codes eines hochgeladenen Bildes."""
    content = await file.read()
    try:
        symbols = decode_image_bytes(content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    results = [
        {"format": s.format, **scan_result_to_dict(decode_scanned_text(s.data))}
        for s in symbols
    ]
    logger.info(f"📤 Bild '{file.filename}' ausgewertet: {len(results)} Ergebnis(se)")
    return {"count": len(results), "results": results}
