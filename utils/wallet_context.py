"""
Wallet-Verbindung einer Sitzung (Adresse, Chain, Status).

Der Kontext wird beim Sitzungsstart erzeugt, bei Wallet-Events aktualisiert
und mit disconnect() abgebaut. Listener registrieren sich über subscribe().
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, List, Optional

from utils.qr_schema import is_valid_address

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WalletState:
    address: Optional[str] = None
    chain_id: Optional[int] = None
    is_connected: bool = False


Listener = Callable[[WalletState], None]


class Subscription:
    def __init__(self, context: "WalletConnectionContext", listener: Listener):
        self._context = context
        self._listener = listener
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._context._remove(self._listener)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.unsubscribe()


class WalletConnectionContext:
    def __init__(self, address: Optional[str] = None, chain_id: Optional[int] = None):
        self._state = WalletState(
            address=address,
            chain_id=chain_id,
            is_connected=bool(address),
        )
        self._listeners: List[Listener] = []

    # 🔹 Lesender Zugriff
    @property
    def state(self) -> WalletState:
        return self._state

    @property
    def address(self) -> Optional[str]:
        return self._state.address

    @property
    def chain_id(self) -> Optional[int]:
        return self._state.chain_id

    @property
    def is_connected(self) -> bool:
        return self._state.is_connected

    # 🔹 Events
    def update_account(self, address: Optional[str]) -> None:
        if address and not is_valid_address(address):
            raise ValueError(f"Invalid wallet address: {address}")
        self._set(replace(self._state, address=address or None, is_connected=bool(address)))

    def update_chain(self, chain_id: Optional[int]) -> None:
        self._set(replace(self._state, chain_id=chain_id))

    def disconnect(self) -> None:
        self._set(WalletState())

    def subscribe(self, listener: Listener) -> Subscription:
        self._listeners.append(listener)
        return Subscription(self, listener)

    def _remove(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _set(self, state: WalletState) -> None:
        if state == self._state:
            return
        self._state = state
        logger.info(f"👛 Wallet-Status: connected={state.is_connected} chain={state.chain_id}")
        for listener in list(self._listeners):
            listener(state)
