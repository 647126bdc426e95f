from __future__ import annotations

import pytest

from utils.wallet_context import WalletConnectionContext

ADDRESS = "0x" + "9" * 40


def test_lifecycle_notifies_listeners():
    ctx = WalletConnectionContext()
    seen = []
    ctx.subscribe(seen.append)

    ctx.update_account(ADDRESS)
    ctx.update_chain(44787)
    ctx.disconnect()

    assert [s.is_connected for s in seen] == [True, True, False]
    assert seen[1].chain_id == 44787
    assert ctx.address is None


def test_unchanged_state_does_not_notify():
    ctx = WalletConnectionContext(address=ADDRESS)
    seen = []
    ctx.subscribe(seen.append)
    ctx.update_account(ADDRESS)
    assert seen == []


def test_subscription_context_manager_and_idempotent_unsubscribe():
    ctx = WalletConnectionContext()
    seen = []
    with ctx.subscribe(seen.append) as sub:
        ctx.update_account(ADDRESS)
    sub.unsubscribe()
    ctx.disconnect()
    assert len(seen) == 1
    assert sub.active is False


def test_invalid_address_rejected():
    ctx = WalletConnectionContext()
    with pytest.raises(ValueError):
        ctx.update_account("0x123")
    assert not ctx.is_connected
