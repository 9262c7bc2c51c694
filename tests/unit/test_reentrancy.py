"""Reentrancy guard: payout callbacks must not re-enter the ledger."""

import pytest

from src.nm_common.enums import PayoutKind
from src.nm_common.errors import ReentrancyError, TransferFailedError
from src.nm_ledger.domain.guard import ReentrancyGuard
from src.nm_ledger.domain.invariants import check_snapshot
from src.nm_ledger.domain.ledger import MarketplaceLedger
from src.nm_ledger.domain.models import LedgerConfig

OWNER = "0xowner"
ALICE = "0xalice"
BOB = "0xbob"
PRICE = 10**17


class _ReenteringGateway:
    """Calls back into the ledger from inside a payout, like a hostile recipient."""

    def __init__(self) -> None:
        self.ledger: MarketplaceLedger | None = None
        self.errors: list[Exception] = []

    def send(self, recipient: str, amount: int, kind: PayoutKind) -> None:
        assert self.ledger is not None
        try:
            self.ledger.withdraw_earnings(recipient)
        except ReentrancyError as exc:
            self.errors.append(exc)
            raise


def _setup() -> tuple[MarketplaceLedger, _ReenteringGateway]:
    gateway = _ReenteringGateway()
    ledger = MarketplaceLedger(LedgerConfig(owner=OWNER), payouts=gateway)
    gateway.ledger = ledger
    ledger.create_note(ALICE, "Compilers", "", "QmHash", PRICE, "CS")
    ledger.purchase_note(BOB, 0, PRICE)
    return ledger, gateway


class TestReentrancyGuard:
    def test_hold_sets_and_clears(self) -> None:
        guard = ReentrancyGuard()
        assert guard.entered is False
        with guard.hold():
            assert guard.entered is True
        assert guard.entered is False

    def test_nested_hold_rejected(self) -> None:
        guard = ReentrancyGuard()
        with guard.hold():
            with pytest.raises(ReentrancyError):
                with guard.hold():
                    pass
            # the rejected nested entry must not clear the outer flag
            assert guard.entered is True
        assert guard.entered is False

    def test_cleared_after_exception(self) -> None:
        guard = ReentrancyGuard()
        with pytest.raises(RuntimeError):
            with guard.hold():
                raise RuntimeError("boom")
        assert guard.entered is False


class TestLedgerReentrancy:
    def test_reentrant_withdraw_is_rejected_and_rolled_back(self) -> None:
        ledger, gateway = _setup()
        author_balance = ledger.author_earnings(ALICE)

        with pytest.raises(TransferFailedError):
            ledger.withdraw_earnings(ALICE)

        assert len(gateway.errors) == 1
        assert ledger.author_earnings(ALICE) == author_balance
        assert check_snapshot(ledger.audit_snapshot()) == []

    def test_reentrant_refund_is_rejected(self) -> None:
        ledger, gateway = _setup()
        ledger.create_note(ALICE, "Operating Systems", "", "QmHash2", PRICE, "CS")

        with pytest.raises(TransferFailedError):
            ledger.purchase_note(BOB, 1, PRICE + 1)

        assert isinstance(gateway.errors[0], ReentrancyError)
        assert ledger.has_user_purchased(BOB, 1) is False

    def test_ledger_usable_after_rejected_reentry(self) -> None:
        ledger, _ = _setup()
        with pytest.raises(TransferFailedError):
            ledger.withdraw_earnings(ALICE)
        # guard released: non-payout calls proceed normally
        ledger.update_price(ALICE, 0, 2 * PRICE)
        assert ledger.get_note_details(0).price == 2 * PRICE

    def test_queries_allowed_during_payout(self) -> None:
        seen: list[int] = []

        class _Reader:
            ledger: MarketplaceLedger

            def send(self, recipient: str, amount: int, kind: PayoutKind) -> None:
                seen.append(self.ledger.author_earnings(recipient))

        reader = _Reader()
        ledger = MarketplaceLedger(LedgerConfig(owner=OWNER), payouts=reader)
        reader.ledger = ledger
        ledger.create_note(ALICE, "Compilers", "", "QmHash", PRICE, "CS")
        ledger.purchase_note(BOB, 0, PRICE)

        ledger.withdraw_earnings(ALICE)
        # balance is already zeroed when the payout runs
        assert seen == [0]
