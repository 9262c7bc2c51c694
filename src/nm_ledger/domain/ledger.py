"""MarketplaceLedger: authoritative state machine for the notes marketplace.

Every mutating call validates all of its preconditions before touching state
and either applies completely or raises an AppError with no state change.

Value leaving the ledger (purchase refunds, earnings and platform fee
withdrawals) goes through the PayoutGateway only after the call's
bookkeeping is final. If the gateway raises, the bookkeeping is rolled back
and TransferFailedError is raised. All mutating calls hold the
ReentrancyGuard, so a payout callback cannot re-enter the ledger.

Events are published to `self.events` after the call has committed.
"""

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from src.nm_common.amounts import split_payment, validate_price
from src.nm_common.datetime_utils import utc_now
from src.nm_common.enums import PayoutKind
from src.nm_common.errors import (
    AlreadyPurchasedError,
    AlreadyRatedError,
    ContractPausedError,
    EmptySubjectError,
    EmptyTitleError,
    FeeExceedsMaximumError,
    InsufficientPaymentError,
    InvalidFeeError,
    InvalidPriceError,
    InvalidPrincipalError,
    NoEarningsError,
    NoPlatformFeesError,
    NoteNotForSaleError,
    NoteNotFoundError,
    NotAuthorError,
    NotOwnerError,
    NotPurchasedError,
    RatingOutOfRangeError,
    SelfPurchaseError,
    TransferFailedError,
)
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
from src.nm_ledger.domain.guard import ReentrancyGuard
from src.nm_ledger.domain.models import (
    AuditSnapshot,
    LedgerConfig,
    LedgerTotals,
    Note,
    PurchaseReceipt,
    UserProfile,
)
from src.nm_ledger.domain.payout import PayoutGateway, PayoutOutbox

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


class MarketplaceLedger:
    def __init__(
        self,
        config: LedgerConfig,
        payouts: PayoutGateway | None = None,
        events: EventBus | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        _require_principal(config.owner)
        self.config = config
        self.payouts: PayoutGateway = payouts if payouts is not None else PayoutOutbox()
        self.events = events if events is not None else EventBus()
        self._clock = clock
        self._guard = ReentrancyGuard()

        # Arena: note id == index into _notes
        self._notes: list[Note] = []
        self._notes_by_author: dict[str, list[int]] = {}
        self._notes_by_subject: dict[str, list[int]] = {}

        self._purchases: set[tuple[str, int]] = set()
        self._purchases_by_user: dict[str, list[int]] = {}
        self._purchasers_by_note: dict[int, int] = {}
        self._ratings: dict[tuple[str, int], int] = {}
        self._raters_by_note: dict[int, int] = {}

        self._author_balances: dict[str, int] = {}
        self._platform_fee_balance = 0
        self._profiles: dict[str, UserProfile] = {}

        self._total_accepted = 0
        self._total_withdrawn = 0
        self._total_refunded = 0

    # ------------------------------------------------------------------
    # Note lifecycle
    # ------------------------------------------------------------------

    def create_note(
        self,
        caller: str,
        title: str,
        description: str,
        content_hash: str,
        price: int,
        subject: str,
        metadata_uri: str = "",
    ) -> int:
        with self._guard.hold():
            _require_principal(caller)
            self._require_not_paused()
            if not title:
                raise EmptyTitleError()
            if not subject:
                raise EmptySubjectError()
            _require_valid_price(price)

            note = Note(
                id=len(self._notes),
                title=title,
                description=description,
                content_hash=content_hash,
                author=caller,
                price=price,
                for_sale=True,
                created_at=self._clock(),
                subject=subject,
                metadata_uri=metadata_uri,
            )
            self._notes.append(note)
            self._notes_by_author.setdefault(caller, []).append(note.id)
            self._notes_by_subject.setdefault(subject, []).append(note.id)
            self._profile_for_update(caller).notes_created += 1

        logger.info("Note %d created by %s at %d wei", note.id, caller, price)
        self._emit(
            NoteCreated(
                note_id=note.id,
                author=caller,
                title=title,
                subject=subject,
                price=price,
                content_hash=content_hash,
            )
        )
        return note.id

    def update_price(self, caller: str, note_id: int, new_price: int) -> None:
        with self._guard.hold():
            note = self._get_note(note_id)
            self._require_author(caller, note)
            _require_valid_price(new_price)
            old_price = note.price
            note.price = new_price

        logger.info("Note %d price %d -> %d", note_id, old_price, new_price)
        self._emit(PriceUpdated(note_id=note_id, old_price=old_price, new_price=new_price))

    def update_sale_status(self, caller: str, note_id: int, for_sale: bool) -> None:
        with self._guard.hold():
            note = self._get_note(note_id)
            self._require_author(caller, note)
            note.for_sale = for_sale

        logger.info("Note %d for_sale=%s", note_id, for_sale)
        self._emit(SaleStatusUpdated(note_id=note_id, for_sale=for_sale))

    def toggle_sale_status(self, caller: str, note_id: int) -> bool:
        """Flip for_sale; returns the new value."""
        with self._guard.hold():
            note = self._get_note(note_id)
            self._require_author(caller, note)
            note.for_sale = not note.for_sale
            for_sale = note.for_sale

        logger.info("Note %d for_sale=%s (toggled)", note_id, for_sale)
        self._emit(SaleStatusUpdated(note_id=note_id, for_sale=for_sale))
        return for_sale

    # ------------------------------------------------------------------
    # Purchase / rating
    # ------------------------------------------------------------------

    def purchase_note(self, caller: str, note_id: int, payment: int) -> PurchaseReceipt:
        with self._guard.hold():
            _require_principal(caller)
            self._require_not_paused()
            note = self._get_note(note_id)
            if not note.for_sale:
                raise NoteNotForSaleError()
            if payment < note.price:
                raise InsufficientPaymentError()
            if caller == note.author:
                raise SelfPurchaseError()
            if (caller, note_id) in self._purchases:
                raise AlreadyPurchasedError()

            author_share, fee = split_payment(note.price, self.config.platform_fee_bps)
            receipt = PurchaseReceipt(
                note_id=note_id,
                buyer=caller,
                author=note.author,
                price=note.price,
                author_share=author_share,
                platform_fee=fee,
                refund=payment - note.price,
            )

            self._apply_purchase(note, receipt)
            if receipt.refund > 0:
                self._send(
                    caller,
                    receipt.refund,
                    PayoutKind.REFUND,
                    rollback=lambda: self._revert_purchase(note, receipt),
                )
                self._total_refunded += receipt.refund

        logger.info(
            "Note %d purchased by %s: price=%d author_share=%d fee=%d refund=%d",
            note_id, caller, receipt.price, author_share, fee, receipt.refund,
        )
        self._emit(
            NotePurchased(note_id=note_id, buyer=caller, author=note.author, price=note.price)
        )
        return receipt

    def rate_note(self, caller: str, note_id: int, rating: int) -> int:
        """Record a 1-5 rating from a buyer; returns the new average."""
        with self._guard.hold():
            note = self._get_note(note_id)
            if not (MIN_RATING <= rating <= MAX_RATING):
                raise RatingOutOfRangeError()
            key = (caller, note_id)
            if key not in self._purchases:
                raise NotPurchasedError()
            if key in self._ratings:
                raise AlreadyRatedError()

            note.rating_sum += rating
            note.rating_count += 1
            self._ratings[key] = rating
            self._raters_by_note[note_id] = self._raters_by_note.get(note_id, 0) + 1
            average = note.average_rating

        logger.info("Note %d rated %d by %s (avg=%d)", note_id, rating, caller, average)
        self._emit(NoteRated(note_id=note_id, rater=caller, rating=rating, average_rating=average))
        return average

    # ------------------------------------------------------------------
    # Earnings / profiles
    # ------------------------------------------------------------------

    def withdraw_earnings(self, caller: str) -> int:
        with self._guard.hold():
            amount = self._author_balances.get(caller, 0)
            if amount <= 0:
                raise NoEarningsError()

            self._author_balances[caller] = 0
            self._total_withdrawn += amount

            def rollback() -> None:
                self._author_balances[caller] = amount
                self._total_withdrawn -= amount

            self._send(caller, amount, PayoutKind.EARNINGS, rollback=rollback)

        logger.info("Earnings withdrawn by %s: %d wei", caller, amount)
        self._emit(EarningsWithdrawn(author=caller, amount=amount))
        return amount

    def update_profile(self, caller: str, name: str, bio: str) -> UserProfile:
        with self._guard.hold():
            _require_principal(caller)
            profile = self._profile_for_update(caller)
            profile.name = name
            profile.bio = bio
            result = replace(profile)

        self._emit(ProfileUpdated(principal=caller, display_name=name, bio=bio))
        return result

    # ------------------------------------------------------------------
    # Owner-only administration
    # ------------------------------------------------------------------

    def update_platform_fee(self, caller: str, new_fee_bps: int) -> None:
        with self._guard.hold():
            self._require_owner(caller)
            if new_fee_bps < 0:
                raise InvalidFeeError(new_fee_bps)
            if new_fee_bps > self.config.max_platform_fee_bps:
                raise FeeExceedsMaximumError()
            old_fee_bps = self.config.platform_fee_bps
            self.config.platform_fee_bps = new_fee_bps

        logger.info("Platform fee %d -> %d bps", old_fee_bps, new_fee_bps)
        self._emit(PlatformFeeUpdated(old_fee_bps=old_fee_bps, new_fee_bps=new_fee_bps))

    def set_paused(self, caller: str, paused: bool) -> None:
        with self._guard.hold():
            self._require_owner(caller)
            self.config.paused = paused

        logger.warning("Ledger paused=%s by %s", paused, caller)
        self._emit(ContractPaused(paused=paused))

    def verify_user(self, caller: str, principal: str) -> None:
        with self._guard.hold():
            self._require_owner(caller)
            _require_principal(principal)
            self._profile_for_update(principal).verified = True

        logger.info("User %s verified", principal)
        self._emit(UserVerified(principal=principal))

    def withdraw_platform_fees(self, caller: str) -> int:
        with self._guard.hold():
            self._require_owner(caller)
            amount = self._platform_fee_balance
            if amount <= 0:
                raise NoPlatformFeesError()

            self._platform_fee_balance = 0
            self._total_withdrawn += amount

            def rollback() -> None:
                self._platform_fee_balance = amount
                self._total_withdrawn -= amount

            self._send(caller, amount, PayoutKind.PLATFORM_FEES, rollback=rollback)

        logger.info("Platform fees withdrawn by %s: %d wei", caller, amount)
        self._emit(PlatformFeesWithdrawn(owner=caller, amount=amount))
        return amount

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        with self._guard.hold():
            self._require_owner(caller)
            _require_principal(new_owner)
            previous = self.config.owner
            self.config.owner = new_owner

        logger.warning("Ownership transferred %s -> %s", previous, new_owner)
        self._emit(OwnershipTransferred(previous_owner=previous, new_owner=new_owner))

    # ------------------------------------------------------------------
    # Queries (read-only)
    # ------------------------------------------------------------------

    def get_note_details(self, note_id: int) -> Note:
        return replace(self._get_note(note_id))

    def get_all_notes(self) -> list[Note]:
        return [replace(n) for n in self._notes]

    def get_notes_by_author(self, author: str) -> list[int]:
        return list(self._notes_by_author.get(author, []))

    def get_notes_by_subject(self, subject: str) -> list[int]:
        return list(self._notes_by_subject.get(subject, []))

    def get_total_notes(self) -> int:
        return len(self._notes)

    def has_user_purchased(self, principal: str, note_id: int) -> bool:
        self._get_note(note_id)
        return (principal, note_id) in self._purchases

    def get_user_purchases(self, principal: str) -> list[int]:
        return list(self._purchases_by_user.get(principal, []))

    def get_user_rating(self, principal: str, note_id: int) -> int:
        """Rating principal gave note_id, 0 if none."""
        self._get_note(note_id)
        return self._ratings.get((principal, note_id), 0)

    def author_earnings(self, principal: str) -> int:
        return self._author_balances.get(principal, 0)

    def platform_fee_balance(self) -> int:
        return self._platform_fee_balance

    def get_user_profile(self, principal: str) -> UserProfile:
        profile = self._profiles.get(principal)
        return replace(profile) if profile else UserProfile(principal=principal)

    def get_config(self) -> LedgerConfig:
        return replace(self.config)

    def owner_of(self, note_id: int) -> str:
        """Notes are minted to their author and never transferred."""
        return self._get_note(note_id).author

    def balance_of(self, principal: str) -> int:
        return len(self._notes_by_author.get(principal, []))

    def token_uri(self, note_id: int) -> str:
        return self._get_note(note_id).metadata_uri

    def audit_snapshot(self) -> AuditSnapshot:
        return AuditSnapshot(
            config=self.get_config(),
            totals=LedgerTotals(
                author_balances=sum(self._author_balances.values()),
                platform_fee_balance=self._platform_fee_balance,
                accepted=self._total_accepted,
                withdrawn=self._total_withdrawn,
                refunded=self._total_refunded,
            ),
            notes=self.get_all_notes(),
            purchasers=dict(self._purchasers_by_note),
            raters=dict(self._raters_by_note),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get_note(self, note_id: int) -> Note:
        if not (0 <= note_id < len(self._notes)):
            raise NoteNotFoundError(note_id)
        return self._notes[note_id]

    def _require_not_paused(self) -> None:
        if self.config.paused:
            raise ContractPausedError()

    def _require_author(self, caller: str, note: Note) -> None:
        if caller != note.author:
            raise NotAuthorError()

    def _require_owner(self, caller: str) -> None:
        if caller != self.config.owner:
            raise NotOwnerError()

    def _profile_for_update(self, principal: str) -> UserProfile:
        profile = self._profiles.get(principal)
        if profile is None:
            profile = UserProfile(principal=principal)
            self._profiles[principal] = profile
        return profile

    def _apply_purchase(self, note: Note, receipt: PurchaseReceipt) -> None:
        author = receipt.author
        self._author_balances[author] = self._author_balances.get(author, 0) + receipt.author_share
        self._profile_for_update(author).total_earnings += receipt.author_share
        self._platform_fee_balance += receipt.platform_fee
        self._total_accepted += receipt.price

        self._purchases.add((receipt.buyer, note.id))
        self._purchases_by_user.setdefault(receipt.buyer, []).append(note.id)
        self._purchasers_by_note[note.id] = self._purchasers_by_note.get(note.id, 0) + 1
        note.download_count += 1

    def _revert_purchase(self, note: Note, receipt: PurchaseReceipt) -> None:
        author = receipt.author
        self._author_balances[author] -= receipt.author_share
        self._profiles[author].total_earnings -= receipt.author_share
        self._platform_fee_balance -= receipt.platform_fee
        self._total_accepted -= receipt.price

        self._purchases.discard((receipt.buyer, note.id))
        self._purchases_by_user[receipt.buyer].pop()
        if not self._purchases_by_user[receipt.buyer]:
            del self._purchases_by_user[receipt.buyer]
        self._purchasers_by_note[note.id] -= 1
        if self._purchasers_by_note[note.id] == 0:
            del self._purchasers_by_note[note.id]
        note.download_count -= 1

    def _send(
        self, recipient: str, amount: int, kind: PayoutKind, rollback: Callable[[], None]
    ) -> None:
        try:
            self.payouts.send(recipient, amount, kind)
        except Exception as exc:
            rollback()
            logger.warning("%s payout of %d to %s failed: %s", kind.value, amount, recipient, exc)
            raise TransferFailedError(str(exc)) from exc

    def _emit(self, event: LedgerEvent) -> None:
        self.events.publish(event)


def _require_principal(principal: str) -> None:
    if not isinstance(principal, str) or not principal.strip():
        raise InvalidPrincipalError(principal)


def _require_valid_price(price: int) -> None:
    try:
        validate_price(price)
    except ValueError as exc:
        raise InvalidPriceError() from exc
