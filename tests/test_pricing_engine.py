import pytest
from datetime import timedelta

from parkshare.application.services import PricingEngine
from parkshare.domain.common import SlotType
from parkshare.domain.entities import Slot
from parkshare.domain.errors import RejectionReason, ValidationError

from conftest import at


@pytest.fixture
def engine():
    return PricingEngine(fee_rate=0.10)


class TestComputeCost:
    """Hourly under a day, cheaper of hourly and prorated daily from a day on."""

    def test_short_booking_uses_hourly_rate(self, engine):
        assert engine.compute_cost(10, 150, 2) == 20

    def test_under_a_day_ignores_cheaper_daily_rate(self, engine):
        assert engine.compute_cost(10, 150, 23) == 230

    def test_over_a_day_takes_cheaper_prorated_daily(self, engine):
        assert engine.compute_cost(10, 150, 30) == 187.5

    def test_over_a_day_keeps_hourly_when_cheaper(self, engine):
        assert engine.compute_cost(2, 150, 30) == 60

    def test_exactly_one_day(self, engine):
        assert engine.compute_cost(10, 150, 24) == 150

    def test_daily_only_is_prorated_for_short_bookings(self, engine):
        assert engine.compute_cost(None, 48, 12) == 24

    def test_hourly_only_over_a_day(self, engine):
        assert engine.compute_cost(5, None, 30) == 150

    def test_rounds_to_cents(self, engine):
        assert engine.compute_cost(10, None, 4 / 3) == 13.33

    def test_no_rate_is_rejected(self, engine):
        with pytest.raises(ValidationError) as exc_info:
            engine.compute_cost(None, None, 3)
        assert exc_info.value.reason == RejectionReason.MISSING_RATE

    def test_negative_rate_is_rejected(self, engine):
        with pytest.raises(ValidationError) as exc_info:
            engine.compute_cost(-1, None, 3)
        assert exc_info.value.reason == RejectionReason.INVALID_RATE

    def test_free_slot_is_rejected(self, engine):
        with pytest.raises(ValidationError) as exc_info:
            engine.compute_cost(0, None, 3)
        assert exc_info.value.reason == RejectionReason.NON_POSITIVE_PRICE


class TestFeeSplit:

    def test_split_sums_to_cost(self, engine):
        fees = engine.split(187.5)
        assert fees.platform_fee == 18.75
        assert fees.owner_payout == 168.75

    def test_split_rounds_each_part(self, engine):
        fees = engine.split(13.33)
        assert fees.platform_fee == 1.33
        assert fees.owner_payout == 12.0

    def test_zero_fee_rate(self):
        fees = PricingEngine(fee_rate=0).split(40)
        assert fees.platform_fee == 0
        assert fees.owner_payout == 40

    @pytest.mark.parametrize("rate", [-0.1, 1, 1.5])
    def test_invalid_fee_rate(self, rate):
        with pytest.raises(ValueError):
            PricingEngine(fee_rate=rate)


def test_quote_snapshots_rates(engine):
    slot = Slot(community_code="LMR", slot_number="A1", slot_type=SlotType.COVERED, hourly_rate=10, daily_rate=150)
    start = at(hours=2)
    quote = engine.quote(slot, start, start + timedelta(hours=30))

    assert quote.total_amount == 187.5
    assert quote.platform_fee == 18.75
    assert quote.owner_payout == 168.75
    assert quote.hourly_rate == 10
    assert quote.daily_rate == 150
    assert quote.duration_hours == 30
