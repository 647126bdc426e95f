from __future__ import annotations

import pytest

from utils.qr_schema import (
    Payment,
    UserData,
    UserPayload,
    VenueData,
    VenuePayload,
    badge_info,
    display_badges,
    is_valid_address,
    is_valid_payment,
    is_valid_user_payload,
    is_valid_venue_payload,
    payload_kind,
)

WALLET = "0x" + "ab" * 20


def _venue_dict(**overrides):
    raw = {
        "kind": "venue",
        "version": "1.1",
        "url": "https://pianostyle.app/venues/blue-note",
        "generatedAt": 1700000000000,
        "data": {"venueId": 7, "slug": "blue-note", "name": "Blue Note", "city": "Berlin"},
    }
    raw.update(overrides)
    return raw


def test_address_length_is_exactly_40_hex():
    assert is_valid_address("0x" + "a" * 40)
    assert not is_valid_address("0x" + "a" * 39)
    assert not is_valid_address("0x" + "a" * 41)
    assert not is_valid_address("0x" + "g" * 40)
    assert not is_valid_address(None)


def test_venue_payload_requires_id_slug_and_name():
    assert is_valid_venue_payload(_venue_dict())
    assert not is_valid_venue_payload(_venue_dict(data={"slug": "x", "name": "X"}))
    assert not is_valid_venue_payload(_venue_dict(data={"venueId": True, "slug": "x", "name": "X"}))
    assert not is_valid_venue_payload(_venue_dict(version=None))


def test_embedded_invalid_payment_invalidates_payload():
    assert is_valid_venue_payload(_venue_dict(payment={"address": WALLET}))
    assert not is_valid_venue_payload(_venue_dict(payment={"address": "0x123"}))


def test_user_payload_requires_valid_wallet():
    good = {"kind": "user", "version": "1.1", "url": "u", "data": {"walletAddress": WALLET}}
    bad = {"kind": "user", "version": "1.1", "url": "u", "data": {"walletAddress": "0x12"}}
    assert is_valid_user_payload(good)
    assert not is_valid_user_payload(bad)
    assert not is_valid_venue_payload(good)


def test_trailing_newline_is_not_part_of_an_address():
    assert not is_valid_address(WALLET + "\n")
    assert not is_valid_address(" " + WALLET)
    user = {"kind": "user", "version": "1.1", "url": "u", "data": {"walletAddress": WALLET + "\n"}}
    assert not is_valid_user_payload(user)
    assert not is_valid_payment({"address": WALLET + "\n"})


def test_predicates_never_raise_on_garbage():
    for junk in (None, 42, "text", [], {"kind": 5}):
        assert is_valid_payment(junk) is False
        assert is_valid_venue_payload(junk) is False
        assert is_valid_user_payload(junk) is False


def test_legacy_type_key_is_accepted():
    raw = _venue_dict()
    raw["type"] = raw.pop("kind")
    raw["timestamp"] = raw.pop("generatedAt")
    assert payload_kind(raw) == "venue"
    payload = VenuePayload.from_dict(raw)
    assert payload.generated_at == 1700000000000


def test_venue_payload_dict_round_trip():
    payload = VenuePayload(
        data=VenueData(venue_id=1, slug="s", name="N"),
        url="https://pianostyle.app/venues/s",
        generated_at=1,
        payment=Payment(address=WALLET, amount="2.5"),
    )
    assert VenuePayload.from_dict(payload.to_dict()) == payload
    assert is_valid_venue_payload(payload)


def test_user_payload_badges_from_v10_objects():
    raw = {
        "type": "user",
        "version": "1.0",
        "url": "u",
        "data": {"walletAddress": WALLET, "badges": [{"id": "top_scout"}, "jam_host"]},
    }
    payload = UserPayload.from_dict(raw)
    assert payload.data.badges == ("top_scout", "jam_host")


def test_display_badges_limit_and_badge_info():
    payload = UserPayload(
        data=UserData(wallet_address=WALLET, badges=tuple(f"b{i}" for i in range(8))),
        url="u",
    )
    assert len(display_badges(payload)) == 5
    assert badge_info("piano_virtuoso")["name"] == "Piano Virtuoso"
    assert badge_info("unknown")["icon"] == "🏆"


def test_social_links_are_read_only_and_payload_is_hashable():
    links = {"instagram": "@bluenote"}
    venue = VenueData(venue_id=1, slug="blue-note", name="Blue Note", social_links=links)
    links["x"] = "@changed"
    assert dict(venue.social_links) == {"instagram": "@bluenote"}
    with pytest.raises(TypeError):
        venue.social_links["x"] = "@changed"

    payload = UserPayload(data=UserData(wallet_address=WALLET, social_links={"web": "https://a.b"}), url="u")
    assert hash(payload) == hash(payload)
    assert payload.to_dict()["data"]["socialLinks"] == {"web": "https://a.b"}
