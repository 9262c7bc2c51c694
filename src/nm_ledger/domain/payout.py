"""Payout gateways: where value leaving the ledger is sent.

The ledger calls `send` only after its own bookkeeping is final. A gateway
that raises makes the ledger roll that call back.
"""

from typing import Protocol

from src.nm_common.enums import PayoutKind
from src.nm_ledger.domain.models import Payout


class PayoutGateway(Protocol):
    def send(self, recipient: str, amount: int, kind: PayoutKind) -> None: ...


class PayoutOutbox:
    """Collects payouts in memory; the application service persists them."""

    def __init__(self) -> None:
        self._pending: list[Payout] = []

    def send(self, recipient: str, amount: int, kind: PayoutKind) -> None:
        self._pending.append(Payout(recipient=recipient, amount=amount, kind=kind))

    def drain(self) -> list[Payout]:
        pending, self._pending = self._pending, []
        return pending

    def __len__(self) -> int:
        return len(self._pending)
