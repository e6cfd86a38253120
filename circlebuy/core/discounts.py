"""
Tiered group discounts.

A tier unlocks a percentage off the product price once a group reaches
``members_required`` members. Products may define their own tiers in the
``product_discount_tiers`` table; otherwise DEFAULT_TIERS applies.

All money is handled as Decimal and rounded half-up to cents.
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Sequence

from circlebuy.core.errors import InvalidDiscountTier

CENTS = Decimal("0.01")
HUNDRED = Decimal("100")


@dataclass(frozen=True, order=True)
class DiscountTier:
    members_required: int
    percentage: Decimal

    def __post_init__(self):
        if self.members_required < 1:
            raise InvalidDiscountTier("members_required must be at least 1")
        if not (Decimal("0") <= self.percentage <= HUNDRED):
            raise InvalidDiscountTier("discount percentage must be between 0 and 100")


DEFAULT_TIERS: List[DiscountTier] = [
    DiscountTier(2, Decimal("10")),
    DiscountTier(3, Decimal("15")),
    DiscountTier(4, Decimal("20")),
]


@dataclass
class TierStatus:
    members_required: int
    percentage: Decimal
    unit_price: Decimal
    reached: bool


@dataclass
class DiscountProgress:
    member_count: int
    base_price: Decimal
    percentage: Decimal
    unit_price: Decimal
    savings_per_item: Decimal
    next_tier: Optional[DiscountTier]
    members_needed: int
    tiers: List[TierStatus] = field(default_factory=list)


def to_decimal(value) -> Decimal:
    """Convert a JSON number (float/int/str) to Decimal without float artefacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def tiers_from_rows(rows: Iterable[dict]) -> List[DiscountTier]:
    """Build tiers from product_discount_tiers rows; empty input falls back to DEFAULT_TIERS."""
    tiers = [
        DiscountTier(int(row["members_required"]), to_decimal(row["discount_percentage"]))
        for row in rows or []
    ]
    return sorted(tiers) if tiers else list(DEFAULT_TIERS)


def _normalize(tiers: Optional[Sequence[DiscountTier]]) -> List[DiscountTier]:
    return sorted(tiers) if tiers else list(DEFAULT_TIERS)


def _check_count(member_count: int):
    if member_count < 0:
        raise ValueError("member_count must be >= 0")


def discount_percentage(member_count: int, tiers: Optional[Sequence[DiscountTier]] = None) -> Decimal:
    """Percentage unlocked at member_count.

    Uses the best tier whose threshold is met rather than the last one, so a
    badly ordered tier table can never make the discount drop as a group grows.
    """
    _check_count(member_count)
    unlocked = [t.percentage for t in _normalize(tiers) if t.members_required <= member_count]
    return max(unlocked) if unlocked else Decimal("0")


def apply_discount(base_price, percentage: Decimal) -> Decimal:
    price = to_decimal(base_price) * (1 - to_decimal(percentage) / HUNDRED)
    return price.quantize(CENTS, rounding=ROUND_HALF_UP)


def discounted_price(base_price, member_count: int, tiers: Optional[Sequence[DiscountTier]] = None) -> Decimal:
    return apply_discount(base_price, discount_percentage(member_count, tiers))


def next_tier(member_count: int, tiers: Optional[Sequence[DiscountTier]] = None) -> Optional[DiscountTier]:
    """First tier that would raise the current discount, or None at the top."""
    current = discount_percentage(member_count, tiers)
    for tier in _normalize(tiers):
        if tier.members_required > member_count and tier.percentage > current:
            return tier
    return None


def members_needed(member_count: int, tiers: Optional[Sequence[DiscountTier]] = None) -> int:
    tier = next_tier(member_count, tiers)
    return tier.members_required - member_count if tier else 0


def discount_progress(base_price, member_count: int, tiers: Optional[Sequence[DiscountTier]] = None) -> DiscountProgress:
    ordered = _normalize(tiers)
    # Same arithmetic as discounted_price: discount the raw price, round once
    base = to_decimal(base_price)
    percentage = discount_percentage(member_count, ordered)
    unit_price = apply_discount(base, percentage)
    upcoming = next_tier(member_count, ordered)
    return DiscountProgress(
        member_count=member_count,
        base_price=base.quantize(CENTS, rounding=ROUND_HALF_UP),
        percentage=percentage,
        unit_price=unit_price,
        savings_per_item=(base - unit_price).quantize(CENTS, rounding=ROUND_HALF_UP),
        next_tier=upcoming,
        members_needed=upcoming.members_required - member_count if upcoming else 0,
        tiers=[
            TierStatus(
                members_required=t.members_required,
                percentage=t.percentage,
                unit_price=apply_discount(base, t.percentage),
                reached=t.members_required <= member_count,
            )
            for t in ordered
        ],
    )
