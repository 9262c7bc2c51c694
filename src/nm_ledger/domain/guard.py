"""Reentrancy guard for value-transferring ledger calls."""

from collections.abc import Iterator
from contextlib import contextmanager

from src.nm_common.errors import ReentrancyError


class ReentrancyGuard:
    """Per-ledger "in call" flag.

    Set on entry to a mutating call and cleared on exit. A nested mutating
    call made while the flag is set (e.g. from a payout callback) is rejected
    with ReentrancyError and leaves the outer call's flag untouched.
    """

    def __init__(self) -> None:
        self._entered = False

    @property
    def entered(self) -> bool:
        return self._entered

    @contextmanager
    def hold(self) -> Iterator[None]:
        if self._entered:
            raise ReentrancyError()
        self._entered = True
        try:
            yield
        finally:
            self._entered = False
