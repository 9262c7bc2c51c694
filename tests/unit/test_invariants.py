"""Unit tests for ledger invariant verification."""

from datetime import UTC, datetime

from src.nm_ledger.domain.invariants import check_snapshot, verify_ledger_invariants
from src.nm_ledger.domain.ledger import MarketplaceLedger
from src.nm_ledger.domain.models import AuditSnapshot, LedgerConfig, LedgerTotals, Note

OWNER = "0xowner"
ALICE = "0xalice"


def _note(**kwargs: object) -> Note:
    defaults: dict[str, object] = {
        "id": 0,
        "title": "t",
        "description": "",
        "content_hash": "Qm",
        "author": ALICE,
        "price": 100,
        "for_sale": True,
        "created_at": datetime(2026, 1, 1, tzinfo=UTC),
        "subject": "s",
    }
    defaults.update(kwargs)
    return Note(**defaults)  # type: ignore[arg-type]


def _snapshot(
    notes: list[Note] | None = None,
    totals: LedgerTotals | None = None,
    purchasers: dict[int, int] | None = None,
    raters: dict[int, int] | None = None,
    config: LedgerConfig | None = None,
) -> AuditSnapshot:
    return AuditSnapshot(
        config=config or LedgerConfig(owner=OWNER),
        totals=totals or LedgerTotals(0, 0, 0, 0, 0),
        notes=notes or [],
        purchasers=purchasers or {},
        raters=raters or {},
    )


class TestCheckSnapshot:
    def test_empty_is_consistent(self) -> None:
        assert check_snapshot(_snapshot()) == []

    def test_money_not_conserved(self) -> None:
        totals = LedgerTotals(
            author_balances=90, platform_fee_balance=5, accepted=100, withdrawn=0, refunded=0
        )
        violations = check_snapshot(_snapshot(totals=totals))
        assert len(violations) == 1
        assert violations[0].startswith("INV-1")

    def test_withdrawals_count_against_accepted(self) -> None:
        totals = LedgerTotals(
            author_balances=0, platform_fee_balance=3, accepted=100, withdrawn=97, refunded=50
        )
        assert check_snapshot(_snapshot(totals=totals)) == []

    def test_fee_above_max(self) -> None:
        config = LedgerConfig(owner=OWNER)
        config.platform_fee_bps = 2000
        violations = check_snapshot(_snapshot(config=config))
        assert any(v.startswith("INV-2") for v in violations)

    def test_non_positive_price(self) -> None:
        violations = check_snapshot(_snapshot(notes=[_note(price=0)]))
        assert any(v.startswith("INV-3") for v in violations)

    def test_download_count_mismatch(self) -> None:
        violations = check_snapshot(_snapshot(notes=[_note(download_count=2)], purchasers={0: 1}))
        assert any(v.startswith("INV-4") for v in violations)

    def test_more_raters_than_buyers(self) -> None:
        note = _note(download_count=1, rating_count=2, rating_sum=10)
        violations = check_snapshot(_snapshot(notes=[note], purchasers={0: 1}, raters={0: 2}))
        assert any(v.startswith("INV-5") for v in violations)

    def test_average_out_of_range(self) -> None:
        note = _note(download_count=1, rating_count=1, rating_sum=9)
        violations = check_snapshot(_snapshot(notes=[note], purchasers={0: 1}, raters={0: 1}))
        assert any("average_rating=9" in v for v in violations)


class TestVerifyLedger:
    def test_busy_ledger_is_consistent(self) -> None:
        ledger = MarketplaceLedger(LedgerConfig(owner=OWNER))
        for i in range(3):
            ledger.create_note(ALICE, f"Note {i}", "", f"Qm{i}", 10**16 + i * 7, "Math")
        for buyer_no in range(5):
            buyer = f"0xbuyer{buyer_no}"
            for note_id in range(3):
                ledger.purchase_note(buyer, note_id, 10**17)
                ledger.rate_note(buyer, note_id, 1 + (buyer_no + note_id) % 5)
        ledger.withdraw_earnings(ALICE)
        ledger.update_platform_fee(OWNER, 999)
        ledger.purchase_note("0xlate", 2, 10**17)
        ledger.withdraw_platform_fees(OWNER)

        assert verify_ledger_invariants(ledger) == []
        totals = ledger.audit_snapshot().totals
        assert totals.refunded > 0
