"""
Atomicity Conformance Tests

INVARIANT (ATOMIC policy): a distribution either pays every holder in the
snapshot or changes no balance at all.

INVARIANT (SEQUENTIAL policy): a failure at holder k leaves holders
0..k-1 paid, holders k.. unpaid, and reports exactly that split.

INVARIANT: a single ledger transfer is all-or-nothing.
"""

from hypothesis import given, settings
from hypothesis import strategies as st
import pytest

from agrotoken import (
    LotRegistry, DistributionEngine, DistributionPolicy, DistributionInterrupted,
    EventLog, FixedClock, RevenueDistributed, DistributionIncomplete,
    AccountFrozen, InsufficientFunds,
)

from tests.conftest import (
    T0, HARVEST, OWNER, SOURCE, LOT_MINT, REVENUE_MINT,
    build_ledger, payout_snapshot, usdc_balances,
)

HOLDERS = ["h0", "h1", "h2", "h3", "h4"]
HOLDINGS = {h: 100 for h in HOLDERS}


def make_world():
    ledger = build_ledger(HOLDINGS, revenue_funds=1000)
    events = EventLog()
    lot = LotRegistry(clock=FixedClock(T0), ledger=ledger).register(
        OWNER, "lot", 1, HARVEST, LOT_MINT,
    )
    return ledger, events, lot


class TestAtomicPolicy:

    @settings(max_examples=20)
    @given(st.sampled_from(HOLDERS))
    def test_frozen_holder_blocks_everyone(self, frozen):
        ledger, events, lot = make_world()
        ledger.freeze_account(f"{frozen}_usdc", authority="bank")
        engine = DistributionEngine(
            ledger, notifier=events, clock=FixedClock(T0), policy=DistributionPolicy.ATOMIC,
        )
        with pytest.raises(AccountFrozen):
            engine.distribute(lot, OWNER, 500, payout_snapshot(HOLDINGS), SOURCE)
        assert usdc_balances(ledger, HOLDERS) == (0,) * len(HOLDERS)
        assert ledger.balance_of(SOURCE) == 1000
        assert len(events) == 0

    def test_underfunded_source_blocks_everyone(self):
        ledger, events, lot = make_world()
        engine = DistributionEngine(
            ledger, notifier=events, clock=FixedClock(T0), policy=DistributionPolicy.ATOMIC,
        )
        with pytest.raises(InsufficientFunds):
            engine.distribute(lot, OWNER, 2000, payout_snapshot(HOLDINGS), SOURCE)
        assert usdc_balances(ledger, HOLDERS) == (0,) * len(HOLDERS)

    def test_success_is_one_batch(self):
        ledger, events, lot = make_world()
        engine = DistributionEngine(
            ledger, notifier=events, clock=FixedClock(T0), policy=DistributionPolicy.ATOMIC,
        )
        receipt = engine.distribute(lot, OWNER, 500, payout_snapshot(HOLDINGS), SOURCE)
        assert len({r.batch_id for r in receipt.records}) == 1
        assert len(events.of_type(RevenueDistributed)) == 1


class TestSequentialPolicy:

    @settings(max_examples=20)
    @given(st.integers(min_value=0, max_value=len(HOLDERS) - 1))
    def test_failure_splits_paid_and_unpaid(self, k):
        ledger, events, lot = make_world()
        ledger.freeze_account(f"{HOLDERS[k]}_usdc", authority="bank")
        engine = DistributionEngine(ledger, notifier=events, clock=FixedClock(T0))

        with pytest.raises(DistributionInterrupted) as exc_info:
            engine.distribute(lot, OWNER, 500, payout_snapshot(HOLDINGS), SOURCE)

        receipt = exc_info.value.receipt
        assert usdc_balances(ledger, HOLDERS) == (100,) * k + (0,) * (len(HOLDERS) - k)
        assert [p.account for p in receipt.unpaid] == [f"{h}_usdc" for h in HOLDERS[k:]]
        assert ledger.balance_of(SOURCE) == 1000 - 100 * k
        assert isinstance(exc_info.value.error, AccountFrozen)

        (incomplete,) = events.of_type(DistributionIncomplete)
        assert (incomplete.paid, incomplete.remaining) == (k, len(HOLDERS) - k)
        assert events.of_type(RevenueDistributed) == ()

    def test_ledger_stays_consistent_after_failure(self):
        ledger, _, lot = make_world()
        ledger.freeze_account("h2_usdc", authority="bank")
        engine = DistributionEngine(ledger, clock=FixedClock(T0))
        with pytest.raises(DistributionInterrupted):
            engine.distribute(lot, OWNER, 500, payout_snapshot(HOLDINGS), SOURCE)
        assert ledger.verify_supply()['valid']
        assert ledger.total_supply(REVENUE_MINT) == 1000
