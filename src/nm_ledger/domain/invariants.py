"""Ledger invariant verification.

INV-1: sum(author balances) + platform fee balance == accepted - withdrawn
INV-2: 0 <= platform_fee_bps <= max_platform_fee_bps
INV-3: every note price > 0
INV-4: note.download_count == number of distinct buyers of the note
INV-5: note.rating_count == number of distinct raters, and the average is in [1, 5]
"""

import logging

from src.nm_ledger.domain.ledger import MAX_RATING, MIN_RATING, MarketplaceLedger
from src.nm_ledger.domain.models import AuditSnapshot

logger = logging.getLogger(__name__)


def check_snapshot(snapshot: AuditSnapshot) -> list[str]:
    """Return a list of violation strings; empty when consistent."""
    violations: list[str] = []
    totals = snapshot.totals
    held = totals.author_balances + totals.platform_fee_balance
    net = totals.accepted - totals.withdrawn
    if held != net:
        violations.append(
            f"INV-1 violated: author_balances({totals.author_balances}) + "
            f"platform_fees({totals.platform_fee_balance}) = {held} "
            f"!= accepted({totals.accepted}) - withdrawn({totals.withdrawn}) = {net}"
        )

    cfg = snapshot.config
    if not (0 <= cfg.platform_fee_bps <= cfg.max_platform_fee_bps):
        violations.append(
            f"INV-2 violated: platform_fee_bps={cfg.platform_fee_bps} "
            f"outside [0, {cfg.max_platform_fee_bps}]"
        )

    for note in snapshot.notes:
        if note.price <= 0:
            violations.append(f"INV-3 violated: note {note.id} price={note.price}")
        buyers = snapshot.purchasers.get(note.id, 0)
        if note.download_count != buyers:
            violations.append(
                f"INV-4 violated: note {note.id} download_count={note.download_count} "
                f"!= buyers={buyers}"
            )
        raters = snapshot.raters.get(note.id, 0)
        if note.rating_count != raters or raters > buyers:
            violations.append(
                f"INV-5 violated: note {note.id} rating_count={note.rating_count} "
                f"raters={raters} buyers={buyers}"
            )
        elif raters and not (MIN_RATING <= note.average_rating <= MAX_RATING):
            violations.append(
                f"INV-5 violated: note {note.id} average_rating={note.average_rating}"
            )
    return violations


def verify_ledger_invariants(ledger: MarketplaceLedger) -> list[str]:
    violations = check_snapshot(ledger.audit_snapshot())
    for msg in violations:
        logger.error(msg)
    return violations
