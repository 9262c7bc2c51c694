"""Global enums: values are persisted in ledger_journal / payouts rows."""

from enum import Enum


class NoteStatus(str, Enum):
    ACTIVE = "ACTIVE"        # for_sale = True
    DELISTED = "DELISTED"    # for_sale = False


class LedgerOperation(str, Enum):
    """Mutating ledger commands; one journal row per accepted command."""
    # Genesis row: the config the journal was started with
    INITIALIZE = "INITIALIZE"
    CREATE_NOTE = "CREATE_NOTE"
    PURCHASE_NOTE = "PURCHASE_NOTE"
    RATE_NOTE = "RATE_NOTE"
    UPDATE_PRICE = "UPDATE_PRICE"
    UPDATE_SALE_STATUS = "UPDATE_SALE_STATUS"
    TOGGLE_SALE_STATUS = "TOGGLE_SALE_STATUS"
    WITHDRAW_EARNINGS = "WITHDRAW_EARNINGS"
    UPDATE_PROFILE = "UPDATE_PROFILE"
    # Owner only
    UPDATE_PLATFORM_FEE = "UPDATE_PLATFORM_FEE"
    SET_PAUSED = "SET_PAUSED"
    VERIFY_USER = "VERIFY_USER"
    WITHDRAW_PLATFORM_FEES = "WITHDRAW_PLATFORM_FEES"
    TRANSFER_OWNERSHIP = "TRANSFER_OWNERSHIP"


class PayoutKind(str, Enum):
    REFUND = "REFUND"
    EARNINGS = "EARNINGS"
    PLATFORM_FEES = "PLATFORM_FEES"
