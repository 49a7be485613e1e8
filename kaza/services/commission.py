"""
Tiered commission rules for brokers (corretores) and managers (gerentes).

Rules:
- JUNIOR brokers: progressive. Each sale keeps the percentage stamped on it
  when it was recorded, so the period total is the sum of stamped commissions.
- PLENO, SENIOR and CLOSER brokers: retroactive. The tier reached by the
  period's sale count applies to the whole period VGV.
- Managers: retroactive by team sale count. The first active range that
  contains the count wins; a gap in the ranges means no commission.

Everything here is plain arithmetic over rows that were already loaded, so it
is shared by the authoritative calculation, the simulator and the cards.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, List, Optional, Sequence

from kaza.models.profile import BrokerLevel
from kaza.models.sale import SaleStatus

HUNDRED = Decimal("100")
CENTS = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Coerce numbers coming from the database or JSON into Decimal."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_money(value: Any) -> Decimal:
    """Round a monetary amount to cents."""
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def apply_percentage(amount: Any, percentage: Any) -> Decimal:
    """amount * percentage / 100, rounded to cents."""
    return to_money(to_decimal(amount) * to_decimal(percentage) / HUNDRED)


def _is_active_sale(sale) -> bool:
    return sale.status == SaleStatus.ACTIVE


def _is_active_tier(tier) -> bool:
    return bool(getattr(tier, "active", True))


def active_sales(sales: Iterable) -> List:
    return [s for s in sales if _is_active_sale(s)]


def total_vgv(sales: Iterable) -> Decimal:
    """Sum of sale values over ACTIVE sales only."""
    return sum((to_decimal(s.sale_value) for s in sales if _is_active_sale(s)), ZERO)


def is_retroactive(level: BrokerLevel) -> bool:
    """Every level except JUNIOR is paid retroactively on the period total."""
    return BrokerLevel(level) != BrokerLevel.JUNIOR


# ── Broker tiers ──────────────────────────────────────────


def applicable_broker_tier(tiers: Sequence, position: int):
    """
    Tier that applies to the sale at `position` in the period.

    Sequence numbers are steps: the highest one not above `position` applies.
    Before the first step is reached the lowest tier applies.
    """
    candidates = [t for t in tiers if _is_active_tier(t)]
    if not candidates:
        return None

    reached = [t for t in candidates if t.sequence_number <= position]
    if reached:
        return max(reached, key=lambda t: t.sequence_number)
    return min(candidates, key=lambda t: t.sequence_number)


@dataclass
class BrokerCommissionSummary:
    """Commission standing of a broker in the current period."""

    level: BrokerLevel
    sales_count: int
    total_vgv: Decimal
    max_tier_sequence: int
    current_tier_sequence: int
    current_tier: Optional[Any]
    current_percentage: Decimal
    is_retroactive: bool
    total_commission: Decimal
    next_tier: Optional[Any]
    sales_until_next_tier: int
    is_at_max_tier: bool

    @property
    def progress_percent(self) -> float:
        """Share of the way to the next tier, 100 once the last tier is reached."""
        if self.next_tier is None:
            return 100.0 if self.current_tier is not None else 0.0
        progress = self.sales_count / self.next_tier.sequence_number * 100
        return min(max(progress, 0.0), 100.0)


def evaluate_broker_commission(
    level: BrokerLevel,
    sales: Iterable,
    tiers: Sequence,
) -> BrokerCommissionSummary:
    """
    Evaluate a broker's commission for one period.

    Args:
        level: Broker level, selects progressive vs retroactive payment
        sales: The broker's sales in the period (any order)
        tiers: Tiers for the broker's level

    Returns:
        BrokerCommissionSummary; with no tiers or no sales everything is zero
    """
    level = BrokerLevel(level)
    counted = active_sales(sales)
    tiers = sorted((t for t in tiers if _is_active_tier(t)), key=lambda t: t.sequence_number)

    sales_count = len(counted)
    vgv = total_vgv(counted)
    max_tier_sequence = tiers[-1].sequence_number if tiers else 1

    current_tier = applicable_broker_tier(tiers, sales_count)
    if current_tier is not None and current_tier.sequence_number <= sales_count:
        current_tier_sequence = current_tier.sequence_number
    else:
        current_tier_sequence = 0
    current_percentage = to_decimal(current_tier.percentage) if current_tier is not None else ZERO

    retroactive = is_retroactive(level)
    if retroactive:
        total_commission = apply_percentage(vgv, current_percentage)
    else:
        # Stamped at sale creation, trusted as is
        total_commission = to_money(
            sum((to_decimal(s.applied_commission) for s in counted), ZERO)
        )

    next_tier = next((t for t in tiers if t.sequence_number > sales_count), None)
    sales_until_next_tier = next_tier.sequence_number - sales_count if next_tier else 0

    return BrokerCommissionSummary(
        level=level,
        sales_count=sales_count,
        total_vgv=to_money(vgv),
        max_tier_sequence=max_tier_sequence,
        current_tier_sequence=current_tier_sequence,
        current_tier=current_tier,
        current_percentage=current_percentage,
        is_retroactive=retroactive,
        total_commission=total_commission,
        next_tier=next_tier,
        sales_until_next_tier=sales_until_next_tier,
        is_at_max_tier=sales_count >= max_tier_sequence,
    )


# ── Manager tiers ─────────────────────────────────────────


def match_manager_tier(tiers: Sequence, total_sales: int):
    """First active tier whose range contains total_sales, in iteration order."""
    for tier in tiers:
        if not _is_active_tier(tier):
            continue
        if tier.range_start <= total_sales and (
            tier.range_end is None or total_sales <= tier.range_end
        ):
            return tier
    return None


def find_next_manager_tier(tiers: Sequence, total_sales: int):
    """Active tier with the smallest range_start above total_sales."""
    upcoming = [
        t for t in tiers if _is_active_tier(t) and t.range_start > total_sales
    ]
    if not upcoming:
        return None
    return min(upcoming, key=lambda t: t.range_start)


def manager_progress_percent(total_sales: int, current_tier, next_tier) -> float:
    """
    Progress from the current tier towards the next one, clamped to [0, 100].

    No next tier means the top tier is reached (100); no current tier means 0.
    """
    if next_tier is None:
        return 100.0
    if current_tier is None:
        return 0.0

    span = next_tier.range_start - current_tier.range_start
    if span <= 0:
        return 100.0
    progress = (total_sales - current_tier.range_start + 1) / span * 100
    return min(max(progress, 0.0), 100.0)


@dataclass
class ManagerCommissionResult:
    """Outcome of matching a team's period totals against the manager tiers."""

    total_sales: int
    total_vgv: Decimal
    tier: Optional[Any]
    applied_percentage: Decimal
    applied_commission: Decimal
    next_tier: Optional[Any]
    sales_until_next_tier: int

    @property
    def tier_id(self) -> Optional[int]:
        return self.tier.id if self.tier is not None else None

    @property
    def progress_percent(self) -> float:
        return manager_progress_percent(self.total_sales, self.tier, self.next_tier)


def evaluate_manager_commission(
    tiers: Sequence,
    total_sales: int,
    total_vgv: Any,
) -> ManagerCommissionResult:
    """
    Match team totals to a manager tier and compute the commission.

    Used by the authoritative period calculation and by the what-if simulator.
    No matching tier is a normal outcome: tier is None and commission is 0.
    """
    vgv = to_decimal(total_vgv)
    tier = match_manager_tier(tiers, total_sales)
    next_tier = find_next_manager_tier(tiers, total_sales)

    percentage = to_decimal(tier.percentage) if tier is not None else ZERO
    commission = apply_percentage(vgv, percentage) if tier is not None else to_money(ZERO)

    return ManagerCommissionResult(
        total_sales=total_sales,
        total_vgv=to_money(vgv),
        tier=tier,
        applied_percentage=percentage,
        applied_commission=commission,
        next_tier=next_tier,
        sales_until_next_tier=(next_tier.range_start - total_sales) if next_tier else 0,
    )
