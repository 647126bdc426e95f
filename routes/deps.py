# routes/deps.py
# =============================================================================
# 🔗 Gemeinsame FastAPI-Dependencies
# =============================================================================

from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException

from utils.wallet_context import WalletConnectionContext


def get_wallet_context(
    x_wallet_address: Optional[str] = Header(default=None),
    x_chain_id: Optional[int] = Header(default=None),
) -> WalletConnectionContext:
    """
    Wallet-Kontext der Anfrage (aus X-Wallet-Address / X-Chain-Id).
    Ohne Header: nicht verbunden.
    """
    wallet = WalletConnectionContext()
    try:
        wallet.update_account(x_wallet_address)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    wallet.update_chain(x_chain_id)
    return wallet
