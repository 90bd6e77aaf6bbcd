import math

import pytest

from app.models.agent import AgentTier
from app.services.geo import distance_meters
from app.services.pricing import (
    compute_agent_payout_cents,
    estimate_labor_cents,
    normalize_cents,
    round_half_up,
)


@pytest.mark.parametrize(
    "tier, payout",
    [
        (AgentTier.BRONZE, 5000),
        (AgentTier.SILVER, 5500),
        (AgentTier.GOLD, 6000),
        (AgentTier.PLATINUM, 7000),
    ],
)
def test_tier_share_of_labor(tier, payout):
    assert compute_agent_payout_cents(10000, 10000, 0, tier) == payout


def test_materials_pass_through_and_half_surcharge():
    # labor 8000 * 0.5 + materials 1500 + half of the 500 surcharge
    assert compute_agent_payout_cents(10000, 8000, 1500, AgentTier.BRONZE) == 5750


def test_half_cents_round_up():
    # 4997 * 0.5 = 2498.5
    assert compute_agent_payout_cents(4997, 4997, 0, AgentTier.BRONZE) == 2499
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert normalize_cents(100.5) == 101


def test_payout_bounds():
    assert compute_agent_payout_cents(1, 1, 0, AgentTier.BRONZE) == 1
    assert compute_agent_payout_cents(1000, 0, 5000, AgentTier.PLATINUM) == 1000


def test_normalize_cents():
    assert normalize_cents(1999.6) == 2000
    assert normalize_cents(-50) == 0
    assert normalize_cents(None) is None
    assert normalize_cents("100") is None
    assert normalize_cents(True) is None
    assert normalize_cents(math.nan) is None
    assert normalize_cents(math.inf) is None


def test_estimate_labor_prefers_catalog_price():
    assert estimate_labor_cents(9900, 120, 150) == 9900
    assert estimate_labor_cents(None, 90, 150) == 13500


def test_distance_zero_for_same_point():
    assert distance_meters(30.2672, -97.7431, 30.2672, -97.7431) == 0


def test_distance_one_thousandth_degree_latitude():
    # ~111 m per 0.001 degree of latitude
    assert distance_meters(30.2672, -97.7431, 30.2682, -97.7431) == pytest.approx(111.2, abs=0.5)


def test_distance_between_cities():
    # Austin to Dallas is roughly 293 km
    assert distance_meters(30.2672, -97.7431, 32.7767, -96.7970) == pytest.approx(293_000, rel=0.02)
