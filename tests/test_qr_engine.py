from __future__ import annotations

import json

import pytest

from utils.qr_codec import InvalidAmountError, VenueScan, decode_scanned_text
from utils.qr_engine import build_qr_code, build_user_payload, build_venue_payload
from utils.qr_schema import display_skills, is_valid_user_payload, is_valid_venue_payload
from utils.wallet_context import WalletConnectionContext

VENUE_WALLET = "0x" + "1" * 40
SESSION_WALLET = "0x" + "2" * 40

VENUE = {
    "id": 12,
    "slug": "blue-note",
    "name": "Blue Note",
    "city": "Berlin",
    "has_piano": True,
    "piano_type": "Steinway D",
}


def test_venue_payload_from_dict_record():
    payload = build_venue_payload(VENUE)
    assert payload.url.endswith("/venues/blue-note")
    assert payload.payment is None
    assert payload.data.piano_info.piano_type == "Steinway D"
    assert is_valid_venue_payload(payload)


def test_venue_payment_defaults_to_connected_wallet():
    wallet = WalletConnectionContext(address=SESSION_WALLET, chain_id=42220)
    payload = build_venue_payload(VENUE, include_payment=True, amount="3", wallet=wallet)
    assert payload.payment.address == SESSION_WALLET
    assert payload.payment.chain_id == 42220
    assert payload.payment.memo == "Venue: Blue Note"


def test_venue_wallet_wins_over_session_wallet():
    record = dict(VENUE, wallet_address=VENUE_WALLET)
    wallet = WalletConnectionContext(address=SESSION_WALLET)
    payload = build_venue_payload(record, include_payment=True, wallet=wallet)
    assert payload.payment.address == VENUE_WALLET


def test_venue_payment_skipped_without_recipient():
    payload = build_venue_payload(VENUE, include_payment=True)
    assert payload.payment is None


def test_invalid_amount_is_rejected():
    with pytest.raises(InvalidAmountError):
        build_venue_payload(dict(VENUE, wallet_address=VENUE_WALLET), include_payment=True, amount="-1")


def test_user_payload_truncates_bio_but_keeps_full_skill_list():
    user = {
        "wallet_address": SESSION_WALLET,
        "username": "anna",
        "bio": "x" * 200,
        "skills": ["jazz", "classical", "blues", "pop", "gospel", "latin"],
    }
    payload = build_user_payload(user, include_payment=True)
    assert len(payload.data.bio) == 150
    assert len(payload.data.skills) == 6
    assert len(display_skills(payload)) == 5
    assert payload.payment.memo == "Tip for anna"
    assert payload.url.endswith("/profile/anna")
    assert is_valid_user_payload(payload)


def test_build_qr_code_output_decodes_back():
    payload = build_venue_payload(dict(VENUE, wallet_address=VENUE_WALLET), include_payment=True, amount="2")
    card = build_qr_code(payload, theme="minimal", size=320)
    assert card["deep_link"] == "pianostyle://venue/blue-note?payment=2"
    assert card["data_url"].startswith("data:image/png;base64,")
    assert json.loads(card["json"]) == card["payload"]

    scanned = decode_scanned_text(card["json"])
    assert isinstance(scanned, VenueScan)
    assert scanned.payment.amount == "2"


def test_build_qr_code_theme_and_print_size():
    card = build_qr_code(build_venue_payload(VENUE), theme="unknown", layout="business-card")
    assert card["theme"]["name"] == "piano"
    assert card["print_size"] == {"width": 1050, "height": 600}
    assert build_qr_code(build_venue_payload(VENUE))["print_size"] is None
