"""
conftest.py - Shared pytest fixtures for agrotoken tests

Provides common fixtures used across unit, conformance and functional tests:
- Clock and event log
- Token ledgers with a lot token (WHEAT) and a revenue currency (USDC)
- A registry with one registered lot
- Distribution engines
"""

import pytest
from datetime import datetime
from typing import Dict, List, Tuple

from agrotoken import (
    TokenLedger, LotRegistry, DistributionEngine, DistributionPolicy,
    EventLog, FixedClock, HolderBalance,
)

from tests.fake_ledger import FakeLedger


T0 = datetime(2025, 3, 1, 9, 0, 0)
HARVEST = datetime(2025, 9, 1, 12, 0, 0)

LOT_MINT = "WHEAT"
REVENUE_MINT = "USDC"
OWNER = "farmer"
SOURCE = "farmer_usdc"


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def build_ledger(
    holdings: Dict[str, int],
    revenue_funds: int = 0,
    extra_supply: int = 0,
) -> TokenLedger:
    """
    Create a ledger where each holder has a WHEAT account and a USDC account.

    Args:
        holdings: {holder: WHEAT balance}
        revenue_funds: USDC balance of the farmer's source account
        extra_supply: WHEAT held by the farmer (outside the holder list)
    """
    ledger = TokenLedger("test")
    ledger.create_mint(LOT_MINT, authority=OWNER)
    ledger.create_mint(REVENUE_MINT, authority="bank")
    ledger.create_account(SOURCE, REVENUE_MINT, owner=OWNER)
    ledger.create_account("farmer_wheat", LOT_MINT, owner=OWNER)
    for holder, amount in holdings.items():
        ledger.create_account(f"{holder}_wheat", LOT_MINT, owner=holder)
        ledger.create_account(f"{holder}_usdc", REVENUE_MINT, owner=holder)
        if amount:
            ledger.mint_to(LOT_MINT, f"{holder}_wheat", amount, authority=OWNER)
    if extra_supply:
        ledger.mint_to(LOT_MINT, "farmer_wheat", extra_supply, authority=OWNER)
    if revenue_funds:
        ledger.mint_to(REVENUE_MINT, SOURCE, revenue_funds, authority="bank")
    return ledger


def payout_snapshot(holdings: Dict[str, int]) -> List[HolderBalance]:
    """Snapshot paying each holder's USDC account for its WHEAT balance."""
    return [HolderBalance(f"{holder}_usdc", amount) for holder, amount in holdings.items()]


def usdc_balances(ledger: TokenLedger, holders) -> Tuple[int, ...]:
    return tuple(ledger.balance_of(f"{h}_usdc") for h in holders)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def clock():
    return FixedClock(T0)


@pytest.fixture
def events():
    return EventLog()


@pytest.fixture
def holdings():
    return {"alice": 600, "bob": 400}


@pytest.fixture
def ledger(holdings):
    """Ledger with alice 600 / bob 400 WHEAT and 1000 USDC of revenue to pay."""
    return build_ledger(holdings, revenue_funds=1000)


@pytest.fixture
def registry(clock, events, ledger):
    return LotRegistry(clock=clock, notifier=events, ledger=ledger)


@pytest.fixture
def lot(registry):
    return registry.register(OWNER, "North Field Wheat", 1200, HARVEST, LOT_MINT)


@pytest.fixture
def engine(ledger, events, clock):
    return DistributionEngine(ledger, notifier=events, clock=clock)


@pytest.fixture
def atomic_engine(ledger, events, clock):
    return DistributionEngine(
        ledger, notifier=events, clock=clock, policy=DistributionPolicy.ATOMIC,
    )


@pytest.fixture
def fake_ledger():
    """FakeLedger with WHEAT supply 1000 and 1000 revenue in the source account."""
    return FakeLedger(balances={SOURCE: 1000}, supplies={LOT_MINT: 1000})
