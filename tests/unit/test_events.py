"""Unit tests for ledger events and the EventBus."""

import pytest

from src.nm_common.errors import NotAuthorError
from src.nm_ledger.domain.events import (
    ContractPaused,
    EarningsWithdrawn,
    EventBus,
    LedgerEvent,
    NoteCreated,
    NotePurchased,
    NoteRated,
    OwnershipTransferred,
    PlatformFeesWithdrawn,
    PlatformFeeUpdated,
    PriceUpdated,
    ProfileUpdated,
    SaleStatusUpdated,
    UserVerified,
)
from src.nm_ledger.domain.ledger import MarketplaceLedger
from src.nm_ledger.domain.models import LedgerConfig

OWNER = "0xowner"
ALICE = "0xalice"
BOB = "0xbob"
PRICE = 10**17


@pytest.fixture
def recorded() -> tuple[MarketplaceLedger, list[LedgerEvent]]:
    ledger = MarketplaceLedger(LedgerConfig(owner=OWNER))
    events: list[LedgerEvent] = []
    ledger.events.subscribe(events.append)
    return ledger, events


class TestLedgerEmits:
    def test_full_flow_event_sequence(
        self, recorded: tuple[MarketplaceLedger, list[LedgerEvent]]
    ) -> None:
        ledger, events = recorded
        ledger.create_note(ALICE, "Statistics", "", "QmHash", PRICE, "Math")
        ledger.purchase_note(BOB, 0, PRICE)
        ledger.rate_note(BOB, 0, 5)
        ledger.update_price(ALICE, 0, 2 * PRICE)
        ledger.update_sale_status(ALICE, 0, False)
        ledger.toggle_sale_status(ALICE, 0)
        ledger.withdraw_earnings(ALICE)
        ledger.update_profile(ALICE, "Alice", "bio")
        ledger.update_platform_fee(OWNER, 300)
        ledger.set_paused(OWNER, True)
        ledger.verify_user(OWNER, ALICE)
        ledger.withdraw_platform_fees(OWNER)
        ledger.transfer_ownership(OWNER, BOB)

        assert events == [
            NoteCreated(
                note_id=0, author=ALICE, title="Statistics", subject="Math",
                price=PRICE, content_hash="QmHash",
            ),
            NotePurchased(note_id=0, buyer=BOB, author=ALICE, price=PRICE),
            NoteRated(note_id=0, rater=BOB, rating=5, average_rating=5),
            PriceUpdated(note_id=0, old_price=PRICE, new_price=2 * PRICE),
            SaleStatusUpdated(note_id=0, for_sale=False),
            SaleStatusUpdated(note_id=0, for_sale=True),
            EarningsWithdrawn(author=ALICE, amount=97_500_000_000_000_000),
            ProfileUpdated(principal=ALICE, display_name="Alice", bio="bio"),
            PlatformFeeUpdated(old_fee_bps=250, new_fee_bps=300),
            ContractPaused(paused=True),
            UserVerified(principal=ALICE),
            PlatformFeesWithdrawn(owner=OWNER, amount=2_500_000_000_000_000),
            OwnershipTransferred(previous_owner=OWNER, new_owner=BOB),
        ]

    def test_rejected_call_emits_nothing(
        self, recorded: tuple[MarketplaceLedger, list[LedgerEvent]]
    ) -> None:
        ledger, events = recorded
        ledger.create_note(ALICE, "Statistics", "", "QmHash", PRICE, "Math")
        events.clear()
        with pytest.raises(NotAuthorError):
            ledger.update_price(BOB, 0, 1)
        assert events == []

    def test_subscriber_runs_after_guard_release(self) -> None:
        ledger = MarketplaceLedger(LedgerConfig(owner=OWNER))
        seen: list[LedgerEvent] = []

        def on_event(event: LedgerEvent) -> None:
            seen.append(event)
            # a subscriber may call back into the ledger once the call committed
            if isinstance(event, NoteCreated):
                ledger.update_profile(event.author, "Alice", "")

        ledger.events.subscribe(on_event)
        ledger.create_note(ALICE, "Statistics", "", "QmHash", PRICE, "Math")
        assert [type(e) for e in seen] == [NoteCreated, ProfileUpdated]
        assert ledger.get_user_profile(ALICE).name == "Alice"


class TestEventBus:
    def test_unsubscribe(self) -> None:
        bus = EventBus()
        seen: list[LedgerEvent] = []
        unsubscribe = bus.subscribe(seen.append)
        bus.publish(ContractPaused(paused=True))
        unsubscribe()
        bus.publish(ContractPaused(paused=False))
        assert seen == [ContractPaused(paused=True)]

    def test_unsubscribe_twice_is_harmless(self) -> None:
        bus = EventBus()
        unsubscribe = bus.subscribe(lambda e: None)
        unsubscribe()
        unsubscribe()

    def test_failing_subscriber_does_not_block_others(self) -> None:
        bus = EventBus()
        seen: list[LedgerEvent] = []

        def broken(event: LedgerEvent) -> None:
            raise RuntimeError("indexer down")

        bus.subscribe(broken)
        bus.subscribe(seen.append)
        bus.publish(UserVerified(principal=ALICE))
        assert seen == [UserVerified(principal=ALICE)]

    def test_to_payload(self) -> None:
        payload = PriceUpdated(note_id=3, old_price=10, new_price=20).to_payload()
        assert payload == {"event": "PriceUpdated", "note_id": 3, "old_price": 10, "new_price": 20}

    def test_events_are_immutable(self) -> None:
        event = UserVerified(principal=ALICE)
        with pytest.raises(AttributeError):
            event.principal = BOB  # type: ignore[misc]
