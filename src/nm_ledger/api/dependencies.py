"""Process-wide LedgerApplicationService and its FastAPI dependency."""

from src.nm_ledger.application.service import LedgerApplicationService

_service = LedgerApplicationService()


def get_ledger_service() -> LedgerApplicationService:
    return _service
