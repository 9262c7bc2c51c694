"""LedgerApplicationService: serializes ledger calls and makes them durable.

One in-memory MarketplaceLedger per process. Every call runs under a single
asyncio.Lock, so mutating calls never interleave. An accepted mutating call
is journaled (plus any payouts it produced) and committed, then its events
are published before the lock is released. If the commit fails, the
in-memory ledger is evicted and rebuilt from the journal on the next call.

The journal opens with an INITIALIZE entry recording owner and fee
settings. Replay takes its config from that entry, so later changes to
the settings never re-price past purchases.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.nm_common.amounts import wei_to_display
from src.nm_common.datetime_utils import utc_now
from src.nm_common.enums import LedgerOperation
from src.nm_common.errors import AppError, InternalError, NotOwnerError
from src.nm_ledger.application.commands import (
    Payload,
    apply_command,
    config_from_genesis,
    genesis_payload,
)
from src.nm_ledger.application.schemas import (
    ConfigResponse,
    CreateNoteRequest,
    EarningsResponse,
    InvariantReport,
    NoteIdListResponse,
    NoteListResponse,
    NoteResponse,
    ProfileResponse,
    PurchaseResponse,
    PurchaseStatusResponse,
    RatingResponse,
    TokenResponse,
    WithdrawalResponse,
    cursor_decode,
    cursor_encode,
)
from src.nm_ledger.domain.events import LedgerEvent
from src.nm_ledger.domain.invariants import verify_ledger_invariants
from src.nm_ledger.domain.ledger import MarketplaceLedger
from src.nm_ledger.domain.models import LedgerConfig
from src.nm_ledger.domain.payout import PayoutOutbox
from src.nm_ledger.domain.repository import EventPublisherProtocol, JournalRepositoryProtocol
from src.nm_ledger.infrastructure.event_publisher import RedisEventPublisher
from src.nm_ledger.infrastructure.persistence import JournalRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


def config_from_settings() -> LedgerConfig:
    return LedgerConfig(
        owner=settings.PLATFORM_OWNER,
        platform_fee_bps=settings.DEFAULT_PLATFORM_FEE_BPS,
        max_platform_fee_bps=settings.MAX_PLATFORM_FEE_BPS,
    )


class LedgerApplicationService:
    def __init__(
        self,
        repo: JournalRepositoryProtocol | None = None,
        publisher: EventPublisherProtocol | None = None,
        config_factory: Callable[[], LedgerConfig] = config_from_settings,
    ) -> None:
        self._repo: JournalRepositoryProtocol = repo or JournalRepository()
        self._publisher: EventPublisherProtocol = publisher or RedisEventPublisher()
        self._config_factory = config_factory
        self._lock = asyncio.Lock()
        self._outbox = PayoutOutbox()
        self._ledger: MarketplaceLedger | None = None
        self._now: datetime = utc_now()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def restore(self, db: AsyncSession) -> None:
        """Rebuild the ledger from the journal (startup / error recovery)."""
        async with self._lock:
            await self._restore(db)

    async def _restore(self, db: AsyncSession) -> MarketplaceLedger:
        entries = await self._repo.load_journal(db)
        if entries:
            genesis, replay = entries[0], entries[1:]
            if genesis.operation != LedgerOperation.INITIALIZE.value:
                logger.error("Journal entry %d is %s, expected INITIALIZE", genesis.id, genesis.operation)
                raise InternalError("Journal has no genesis entry")
            config = config_from_genesis(genesis.payload)
            if config != self._config_factory():
                logger.warning(
                    "Ledger config settings differ from the journal genesis; "
                    "using owner=%s fee=%d bps (max %d) from the journal",
                    config.owner, config.platform_fee_bps, config.max_platform_fee_bps,
                )
        else:
            config = self._config_factory()
            await self._write_genesis(db, config)
            replay = []

        ledger = MarketplaceLedger(config, payouts=self._outbox, clock=self._clock)
        for entry in replay:
            self._now = entry.created_at
            try:
                apply_command(ledger, LedgerOperation(entry.operation), entry.caller, entry.payload)
            except AppError as exc:
                logger.error(
                    "Journal replay rejected entry %d (%s): %s",
                    entry.id, entry.operation, exc.message,
                )
                raise InternalError(f"Journal replay failed at entry {entry.id}") from exc
        # Replayed payouts were already persisted when first accepted
        self._outbox.drain()

        if verify_ledger_invariants(ledger):
            raise InternalError("Ledger invariants violated after journal replay")
        self._ledger = ledger
        logger.info("Ledger restored from %d journal entries", len(entries))
        return ledger

    async def _write_genesis(self, db: AsyncSession, config: LedgerConfig) -> None:
        self._now = utc_now()
        try:
            await self._repo.append_entry(
                db, LedgerOperation.INITIALIZE.value, config.owner, genesis_payload(config), self._now
            )
            await db.commit()
        except Exception:
            await db.rollback()
            logger.error("Failed to write journal genesis entry")
            raise
        logger.info(
            "Journal started: owner=%s fee=%d bps (max %d)",
            config.owner, config.platform_fee_bps, config.max_platform_fee_bps,
        )

    async def _ensure_ledger(self, db: AsyncSession) -> MarketplaceLedger:
        if self._ledger is None:
            return await self._restore(db)
        return self._ledger

    def _clock(self) -> datetime:
        return self._now

    # ------------------------------------------------------------------
    # Execution core
    # ------------------------------------------------------------------

    async def _execute(
        self,
        db: AsyncSession,
        operation: LedgerOperation,
        caller: str,
        payload: Payload,
        present: Callable[[MarketplaceLedger, Any], T],
    ) -> T:
        async with self._lock:
            ledger = await self._ensure_ledger(db)
            self._now = utc_now()
            committed: list[LedgerEvent] = []
            unsubscribe = ledger.events.subscribe(committed.append)
            try:
                result = apply_command(ledger, operation, caller, payload)
            except AppError as exc:
                self._outbox.drain()
                logger.debug("%s by %s rejected: %s", operation.value, caller, exc.message)
                raise
            except Exception:
                self._outbox.drain()
                raise
            finally:
                unsubscribe()
            payouts = self._outbox.drain()

            try:
                journal_id = await self._repo.append_entry(
                    db, operation.value, caller, payload, self._now
                )
                for payout in payouts:
                    await self._repo.add_payout(db, journal_id, payout)
                await db.commit()
            except Exception:
                await db.rollback()
                # Evict: memory is ahead of the journal; rebuild on next call
                self._ledger = None
                logger.error("Failed to journal %s by %s; ledger evicted", operation.value, caller)
                raise

            response = present(ledger, result)
            # Published under the lock so the stream follows journal order
            for event in committed:
                await self._publisher.publish(event)
        return response

    async def _read(self, db: AsyncSession, query: Callable[[MarketplaceLedger], T]) -> T:
        async with self._lock:
            ledger = await self._ensure_ledger(db)
            return query(ledger)

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    async def create_note(
        self, db: AsyncSession, caller: str, body: CreateNoteRequest
    ) -> NoteResponse:
        payload = {
            "title": body.title,
            "description": body.description,
            "content_hash": body.content_hash,
            "price": body.price_wei,
            "subject": body.subject,
            "metadata_uri": body.metadata_uri,
        }
        return await self._execute(
            db, LedgerOperation.CREATE_NOTE, caller, payload,
            lambda lg, note_id: NoteResponse.from_domain(lg.get_note_details(note_id)),
        )

    async def purchase_note(
        self, db: AsyncSession, caller: str, note_id: int, payment_wei: int
    ) -> PurchaseResponse:
        return await self._execute(
            db, LedgerOperation.PURCHASE_NOTE, caller,
            {"note_id": note_id, "payment": payment_wei},
            lambda lg, receipt: PurchaseResponse.from_receipt(receipt),
        )

    async def rate_note(
        self, db: AsyncSession, caller: str, note_id: int, rating: int
    ) -> RatingResponse:
        def present(lg: MarketplaceLedger, average: int) -> RatingResponse:
            note = lg.get_note_details(note_id)
            return RatingResponse(
                note_id=note_id,
                rating=rating,
                average_rating=average,
                rating_count=note.rating_count,
            )

        return await self._execute(
            db, LedgerOperation.RATE_NOTE, caller,
            {"note_id": note_id, "rating": rating}, present,
        )

    async def update_price(
        self, db: AsyncSession, caller: str, note_id: int, new_price_wei: int
    ) -> NoteResponse:
        return await self._execute(
            db, LedgerOperation.UPDATE_PRICE, caller,
            {"note_id": note_id, "new_price": new_price_wei},
            lambda lg, _: NoteResponse.from_domain(lg.get_note_details(note_id)),
        )

    async def update_sale_status(
        self, db: AsyncSession, caller: str, note_id: int, for_sale: bool
    ) -> NoteResponse:
        return await self._execute(
            db, LedgerOperation.UPDATE_SALE_STATUS, caller,
            {"note_id": note_id, "for_sale": for_sale},
            lambda lg, _: NoteResponse.from_domain(lg.get_note_details(note_id)),
        )

    async def toggle_sale_status(
        self, db: AsyncSession, caller: str, note_id: int
    ) -> NoteResponse:
        return await self._execute(
            db, LedgerOperation.TOGGLE_SALE_STATUS, caller, {"note_id": note_id},
            lambda lg, _: NoteResponse.from_domain(lg.get_note_details(note_id)),
        )

    async def get_note(self, db: AsyncSession, note_id: int) -> NoteResponse:
        return await self._read(db, lambda lg: NoteResponse.from_domain(lg.get_note_details(note_id)))

    async def list_notes(
        self,
        db: AsyncSession,
        subject: str | None,
        author: str | None,
        cursor: str | None,
        limit: int,
    ) -> NoteListResponse:
        cursor_id = cursor_decode(cursor)

        def query(lg: MarketplaceLedger) -> NoteListResponse:
            ids: list[int] = list(range(lg.get_total_notes()))
            if subject is not None:
                ids = lg.get_notes_by_subject(subject)
            if author is not None:
                by_author = set(lg.get_notes_by_author(author))
                ids = [i for i in ids if i in by_author]
            if cursor_id is not None:
                ids = [i for i in ids if i > cursor_id]
            # Fetch limit+1 to detect has_more
            window = ids[: limit + 1]
            has_more = len(window) > limit
            page = window[:limit]
            items = [NoteResponse.from_domain(lg.get_note_details(i)) for i in page]
            next_cursor = cursor_encode(page[-1]) if has_more and page else None
            return NoteListResponse(items=items, next_cursor=next_cursor, has_more=has_more)

        return await self._read(db, query)

    async def get_total_notes(self, db: AsyncSession) -> int:
        return await self._read(db, lambda lg: lg.get_total_notes())

    async def get_notes_by_author(self, db: AsyncSession, author: str) -> NoteIdListResponse:
        return await self._read(
            db, lambda lg: NoteIdListResponse.from_ids(lg.get_notes_by_author(author))
        )

    async def get_notes_by_subject(self, db: AsyncSession, subject: str) -> NoteIdListResponse:
        return await self._read(
            db, lambda lg: NoteIdListResponse.from_ids(lg.get_notes_by_subject(subject))
        )

    async def get_token(self, db: AsyncSession, note_id: int) -> TokenResponse:
        return await self._read(
            db,
            lambda lg: TokenResponse(
                note_id=note_id, owner=lg.owner_of(note_id), token_uri=lg.token_uri(note_id)
            ),
        )

    # ------------------------------------------------------------------
    # Users / earnings
    # ------------------------------------------------------------------

    async def get_user_purchases(self, db: AsyncSession, principal: str) -> NoteIdListResponse:
        return await self._read(
            db, lambda lg: NoteIdListResponse.from_ids(lg.get_user_purchases(principal))
        )

    async def get_purchase_status(
        self, db: AsyncSession, principal: str, note_id: int
    ) -> PurchaseStatusResponse:
        return await self._read(
            db,
            lambda lg: PurchaseStatusResponse(
                principal=principal,
                note_id=note_id,
                has_purchased=lg.has_user_purchased(principal, note_id),
                rating=lg.get_user_rating(principal, note_id),
            ),
        )

    async def get_earnings(self, db: AsyncSession, principal: str) -> EarningsResponse:
        def query(lg: MarketplaceLedger) -> EarningsResponse:
            pending = lg.author_earnings(principal)
            return EarningsResponse(
                principal=principal,
                pending_wei=pending,
                pending_display=wei_to_display(pending),
                total_earnings_wei=lg.get_user_profile(principal).total_earnings,
            )

        return await self._read(db, query)

    async def withdraw_earnings(self, db: AsyncSession, caller: str) -> WithdrawalResponse:
        return await self._execute(
            db, LedgerOperation.WITHDRAW_EARNINGS, caller, {},
            lambda lg, amount: WithdrawalResponse.from_amount(caller, amount),
        )

    async def get_profile(self, db: AsyncSession, principal: str) -> ProfileResponse:
        return await self._read(
            db, lambda lg: ProfileResponse.from_domain(lg.get_user_profile(principal))
        )

    async def update_profile(
        self, db: AsyncSession, caller: str, name: str, bio: str
    ) -> ProfileResponse:
        return await self._execute(
            db, LedgerOperation.UPDATE_PROFILE, caller, {"name": name, "bio": bio},
            lambda lg, profile: ProfileResponse.from_domain(profile),
        )

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    @staticmethod
    def _present_config(lg: MarketplaceLedger, _: Any = None) -> ConfigResponse:
        return ConfigResponse.from_domain(
            lg.get_config(), lg.platform_fee_balance(), lg.get_total_notes()
        )

    async def get_config(self, db: AsyncSession) -> ConfigResponse:
        return await self._read(db, self._present_config)

    async def update_platform_fee(
        self, db: AsyncSession, caller: str, fee_bps: int
    ) -> ConfigResponse:
        return await self._execute(
            db, LedgerOperation.UPDATE_PLATFORM_FEE, caller, {"fee_bps": fee_bps},
            self._present_config,
        )

    async def set_paused(self, db: AsyncSession, caller: str, paused: bool) -> ConfigResponse:
        return await self._execute(
            db, LedgerOperation.SET_PAUSED, caller, {"paused": paused}, self._present_config
        )

    async def verify_user(
        self, db: AsyncSession, caller: str, principal: str
    ) -> ProfileResponse:
        return await self._execute(
            db, LedgerOperation.VERIFY_USER, caller, {"principal": principal},
            lambda lg, _: ProfileResponse.from_domain(lg.get_user_profile(principal)),
        )

    async def withdraw_platform_fees(self, db: AsyncSession, caller: str) -> WithdrawalResponse:
        return await self._execute(
            db, LedgerOperation.WITHDRAW_PLATFORM_FEES, caller, {},
            lambda lg, amount: WithdrawalResponse.from_amount(caller, amount),
        )

    async def transfer_ownership(
        self, db: AsyncSession, caller: str, new_owner: str
    ) -> ConfigResponse:
        return await self._execute(
            db, LedgerOperation.TRANSFER_OWNERSHIP, caller, {"new_owner": new_owner},
            self._present_config,
        )

    async def check_invariants(self, db: AsyncSession, caller: str) -> InvariantReport:
        def query(lg: MarketplaceLedger) -> InvariantReport:
            if caller != lg.config.owner:
                raise NotOwnerError()
            violations = verify_ledger_invariants(lg)
            return InvariantReport(ok=not violations, violations=violations)

        return await self._read(db, query)
