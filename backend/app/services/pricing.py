"""Booking price and agent payout arithmetic (all integer cents)."""

import math
from typing import Optional

from app.models.agent import AgentTier

# Labor share paid to the agent, by tier
TIER_PAYOUT_PERCENTAGES = {
    AgentTier.BRONZE: 0.50,
    AgentTier.SILVER: 0.55,
    AgentTier.GOLD: 0.60,
    AgentTier.PLATINUM: 0.70,
}

# Share of any surcharge above labor + materials (urgency, add-ons)
SURCHARGE_PAYOUT_PERCENTAGE = 0.5


def round_half_up(value: float) -> int:
    """Nearest whole cent, halves going up (2498.5 -> 2499)."""
    return int(math.floor(value + 0.5))


def normalize_cents(value) -> Optional[int]:
    """Round to whole cents and clamp at zero; anything non-numeric becomes None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value != value or value in (float("inf"), float("-inf")):
        return None
    return max(0, round_half_up(value))


def estimate_labor_cents(
    catalog_price_cents: Optional[int],
    estimated_minutes: int,
    rate_per_minute_cents: int,
) -> int:
    """Catalog price when known, otherwise minutes times the fallback hourly rate."""
    if catalog_price_cents is not None:
        return catalog_price_cents
    return round_half_up(estimated_minutes * rate_per_minute_cents)


def compute_agent_payout_cents(
    total_cents: int,
    labor_cents: int,
    materials_cents: int,
    tier: AgentTier,
) -> int:
    """
    Agent payout for a job:
    tier share of labor, all of the materials, half of any surcharge.
    Never less than one cent and never more than the job total.
    """
    share = TIER_PAYOUT_PERCENTAGES.get(AgentTier(tier), TIER_PAYOUT_PERCENTAGES[AgentTier.BRONZE])
    surcharge_cents = max(0, total_cents - labor_cents - materials_cents)
    payout = (
        round_half_up(labor_cents * share)
        + materials_cents
        + round_half_up(surcharge_cents * SURCHARGE_PAYOUT_PERCENTAGE)
    )
    return min(total_cents, max(1, payout))
