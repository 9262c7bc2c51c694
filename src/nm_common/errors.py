"""Unified error codes and custom exceptions.

Every ledger rejection is one of these; the message is the reason shown to
the caller verbatim.

Error code ranges:
  1xxx: Auth / authorization
  2xxx: Validation
  3xxx: Note / ledger state conflict
  4xxx: Payment
  5xxx: Value transfer
  6xxx: Content storage
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth / authorization ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Invalid or expired token", 401)


class NotAuthorError(AppError):
    def __init__(self) -> None:
        super().__init__(1101, "Not the author", 403)


class NotOwnerError(AppError):
    def __init__(self) -> None:
        super().__init__(1102, "Caller is not the owner", 403)


# --- 2xxx: Validation ---

class EmptyTitleError(AppError):
    def __init__(self) -> None:
        super().__init__(2001, "Title cannot be empty", 422)


class InvalidPriceError(AppError):
    def __init__(self) -> None:
        super().__init__(2002, "Price must be greater than 0", 422)


class RatingOutOfRangeError(AppError):
    def __init__(self) -> None:
        super().__init__(2003, "Rating must be between 1 and 5", 422)


class InvalidPrincipalError(AppError):
    def __init__(self, principal: str) -> None:
        super().__init__(2004, f"Invalid principal: {principal!r}", 422)


class EmptySubjectError(AppError):
    def __init__(self) -> None:
        super().__init__(2005, "Subject cannot be empty", 422)


class InvalidFeeError(AppError):
    def __init__(self, fee_bps: int) -> None:
        super().__init__(2006, f"Fee must not be negative, got {fee_bps}", 422)


# --- 3xxx: Note / ledger state ---

class NoteNotFoundError(AppError):
    def __init__(self, note_id: int) -> None:
        super().__init__(3001, f"Note not found: {note_id}", 404)


class NoteNotForSaleError(AppError):
    def __init__(self) -> None:
        super().__init__(3002, "Note is not for sale", 422)


class AlreadyPurchasedError(AppError):
    def __init__(self) -> None:
        super().__init__(3003, "Already purchased", 409)


class AlreadyRatedError(AppError):
    def __init__(self) -> None:
        super().__init__(3004, "Already rated this note", 409)


class NotPurchasedError(AppError):
    def __init__(self) -> None:
        super().__init__(3005, "Must purchase note to rate", 422)


class NoEarningsError(AppError):
    def __init__(self) -> None:
        super().__init__(3006, "No earnings to withdraw", 422)


class NoPlatformFeesError(AppError):
    def __init__(self) -> None:
        super().__init__(3007, "No platform fees to withdraw", 422)


class FeeExceedsMaximumError(AppError):
    def __init__(self) -> None:
        super().__init__(3008, "Fee exceeds maximum", 422)


class ContractPausedError(AppError):
    def __init__(self) -> None:
        super().__init__(3009, "Contract is paused", 503)


# --- 4xxx: Payment ---

class InsufficientPaymentError(AppError):
    def __init__(self) -> None:
        super().__init__(4001, "Insufficient payment", 402)


class SelfPurchaseError(AppError):
    def __init__(self) -> None:
        super().__init__(4002, "Cannot buy your own note", 422)


# --- 5xxx: Value transfer ---

class ReentrancyError(AppError):
    def __init__(self) -> None:
        super().__init__(5001, "Reentrant call", 409)


class TransferFailedError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(5002, f"Transfer failed: {detail}", 502)


# --- 6xxx: Content storage ---

class NoFileProvidedError(AppError):
    def __init__(self) -> None:
        super().__init__(6001, "No file provided", 400)


class FileTooLargeError(AppError):
    def __init__(self, size: int, limit: int) -> None:
        super().__init__(6002, f"File too large: {size} bytes (limit {limit})", 413)


class PinningError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(6003, f"Pinning service error: {detail}", 502)


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
