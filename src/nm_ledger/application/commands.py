"""Command dispatch: LedgerOperation + journal payload -> ledger call.

Live requests and journal replay both go through apply_command, so a
replayed journal rebuilds exactly the state the live calls produced.
The first journal row is an INITIALIZE entry holding the starting config;
it is read with config_from_genesis rather than dispatched.
"""

from collections.abc import Callable
from typing import Any

from src.nm_common.enums import LedgerOperation
from src.nm_ledger.domain.ledger import MarketplaceLedger
from src.nm_ledger.domain.models import LedgerConfig

Payload = dict[str, Any]
_Handler = Callable[[MarketplaceLedger, str, Payload], Any]


def _create_note(ledger: MarketplaceLedger, caller: str, p: Payload) -> int:
    return ledger.create_note(
        caller,
        p["title"],
        p["description"],
        p["content_hash"],
        p["price"],
        p["subject"],
        p.get("metadata_uri", ""),
    )


_HANDLERS: dict[LedgerOperation, _Handler] = {
    LedgerOperation.CREATE_NOTE: _create_note,
    LedgerOperation.PURCHASE_NOTE: lambda lg, c, p: lg.purchase_note(c, p["note_id"], p["payment"]),
    LedgerOperation.RATE_NOTE: lambda lg, c, p: lg.rate_note(c, p["note_id"], p["rating"]),
    LedgerOperation.UPDATE_PRICE: lambda lg, c, p: lg.update_price(c, p["note_id"], p["new_price"]),
    LedgerOperation.UPDATE_SALE_STATUS: lambda lg, c, p: lg.update_sale_status(
        c, p["note_id"], p["for_sale"]
    ),
    LedgerOperation.TOGGLE_SALE_STATUS: lambda lg, c, p: lg.toggle_sale_status(c, p["note_id"]),
    LedgerOperation.WITHDRAW_EARNINGS: lambda lg, c, p: lg.withdraw_earnings(c),
    LedgerOperation.UPDATE_PROFILE: lambda lg, c, p: lg.update_profile(c, p["name"], p["bio"]),
    LedgerOperation.UPDATE_PLATFORM_FEE: lambda lg, c, p: lg.update_platform_fee(c, p["fee_bps"]),
    LedgerOperation.SET_PAUSED: lambda lg, c, p: lg.set_paused(c, p["paused"]),
    LedgerOperation.VERIFY_USER: lambda lg, c, p: lg.verify_user(c, p["principal"]),
    LedgerOperation.WITHDRAW_PLATFORM_FEES: lambda lg, c, p: lg.withdraw_platform_fees(c),
    LedgerOperation.TRANSFER_OWNERSHIP: lambda lg, c, p: lg.transfer_ownership(c, p["new_owner"]),
}


def genesis_payload(config: LedgerConfig) -> Payload:
    return {
        "owner": config.owner,
        "platform_fee_bps": config.platform_fee_bps,
        "max_platform_fee_bps": config.max_platform_fee_bps,
    }


def config_from_genesis(payload: Payload) -> LedgerConfig:
    """Rebuild the starting LedgerConfig recorded in the INITIALIZE entry."""
    return LedgerConfig(
        owner=payload["owner"],
        platform_fee_bps=payload["platform_fee_bps"],
        max_platform_fee_bps=payload["max_platform_fee_bps"],
    )


def apply_command(
    ledger: MarketplaceLedger, operation: LedgerOperation, caller: str, payload: Payload
) -> Any:
    """Run one mutating command against the ledger; AppErrors propagate."""
    handler = _HANDLERS.get(operation)
    if handler is None:
        raise ValueError(f"{operation.value} is not a ledger command")
    return handler(ledger, caller, payload)
