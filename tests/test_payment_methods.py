from __future__ import annotations

from utils.payment_methods import (
    CapabilitySnapshot,
    PaymentMethodSelector,
    classify_session,
    suggest_payment_methods,
)
from utils.wallet_context import WalletConnectionContext

IPHONE_UA = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15"
DESKTOP_UA = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 Chrome/120.0"


def test_metamask_desktop():
    caps = CapabilitySnapshot(has_metamask=True)
    assert classify_session(caps) == "web3"
    methods = [(s.method, s.priority) for s in suggest_payment_methods(caps)]
    assert methods == [("web3", 1), ("qr_display", 3)]


def test_camera_mobile_without_wallet():
    caps = CapabilitySnapshot(supports_camera=True, is_mobile=True)
    assert classify_session(caps) == "qr"
    methods = [(s.method, s.priority) for s in suggest_payment_methods(caps)]
    assert methods == [("qr_scan", 1), ("qr_display", 3)]


def test_web3_mobile_with_camera_ranks_scan_second():
    caps = CapabilitySnapshot(has_valora=True, supports_camera=True, is_mobile=True)
    methods = [(s.method, s.priority) for s in suggest_payment_methods(caps)]
    assert methods == [("web3", 1), ("qr_scan", 2), ("qr_display", 3)]


def test_qr_display_is_always_offered():
    methods = [s.method for s in suggest_payment_methods(CapabilitySnapshot())]
    assert methods == ["qr_display"]


def test_from_probe_detects_mobile():
    assert CapabilitySnapshot.from_probe(IPHONE_UA).is_mobile
    assert not CapabilitySnapshot.from_probe(DESKTOP_UA, viewport_width=1440).is_mobile
    assert CapabilitySnapshot.from_probe(DESKTOP_UA, viewport_width=768).is_mobile


def test_from_probe_ignores_unknown_flags():
    caps = CapabilitySnapshot.from_probe(DESKTOP_UA, has_metamask=True, has_phantom=True)
    assert caps.has_metamask
    assert not hasattr(caps, "has_phantom")


def test_selector_refresh_is_idempotent():
    selector = PaymentMethodSelector()
    caps = CapabilitySnapshot(supports_camera=True, is_mobile=True)
    assert selector.refresh(caps) == selector.refresh(caps)
    assert selector.preferred_method == "qr"
    assert selector.should_show_qr_scanner()
    assert selector.onboarding_message.startswith("Perfect for mobile!")


def test_selector_web3_helpers():
    wallet = WalletConnectionContext(address="0x" + "3" * 40)
    selector = PaymentMethodSelector(CapabilitySnapshot(has_metamask=True, has_coinbase_wallet=True), wallet)
    assert selector.recommended_flow == "web3"
    assert selector.should_show_web3_features()
    assert not selector.should_show_qr_features()
    assert selector.can_pay_directly
    assert selector.platform_recommendations == [
        "Web3 wallet detected",
        "MetaMask available",
        "Coinbase Wallet available",
    ]
    assert selector.wallet_install_links()[0] == ("MetaMask", "https://metamask.io/")


def test_selector_desktop_without_wallet():
    selector = PaymentMethodSelector(CapabilitySnapshot())
    assert selector.onboarding_message.startswith("Welcome!")
    assert selector.platform_recommendations == ["QR code payments recommended"]
    assert not selector.can_pay_directly
