"""Integer arithmetic for wei-denominated amounts.

All prices, payments and balances are int (wei, 10**18 per ETH).
No float, no Decimal on the ledger path.
"""

WEI_PER_ETH = 10**18
BPS_DENOMINATOR = 10_000


def validate_price(price: int) -> None:
    """Validate that a price is a positive integer amount of wei."""
    if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
        raise ValueError(f"Price must be a positive integer, got {price!r}")


def calculate_fee(price: int, fee_bps: int) -> int:
    """Platform fee with floor division: the author keeps the remainder.

    fee = floor(price * fee_bps / 10000)
    """
    if price == 0 or fee_bps == 0:
        return 0
    return (price * fee_bps) // BPS_DENOMINATOR


def split_payment(price: int, fee_bps: int) -> tuple[int, int]:
    """Return (author_share, platform_fee); the two always sum to price."""
    fee = calculate_fee(price, fee_bps)
    return price - fee, fee


def wei_to_display(wei: int, symbol: str = "ETH") -> str:
    """Convert wei to display string: 10**17 -> '0.1 ETH', 0 -> '0 ETH'."""
    sign = "-" if wei < 0 else ""
    whole, frac = divmod(abs(wei), WEI_PER_ETH)
    if frac == 0:
        return f"{sign}{whole:,} {symbol}"
    frac_str = f"{frac:018d}".rstrip("0")
    return f"{sign}{whole:,}.{frac_str} {symbol}"
