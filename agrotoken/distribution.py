"""
distribution.py - Revenue Distribution Engine

=== DISTRIBUTION MODEL ===

A distribution takes:
    lot: Lot                    - Identifies the owner and the token mint
    total_revenue: int          - Amount to pay out (> 0)
    holders: [(account, balance)] - Caller-supplied, ordered snapshot
    source_account: str         - Account the revenue is paid from

Each holder's share is computed against the mint's total supply, read once:

    share = balance * total_revenue // total_supply

Floor division never over-allocates, so sum(shares) <= total_revenue. The
remainder (dust) is not transferred and stays in source_account.

The snapshot is not discovered here. Whoever builds it decides which holders
are paid; a holder left out of the list receives nothing.

=== TRANSFER POLICIES ===

SEQUENTIAL: one ledger transfer per holder, in snapshot order. A failed
    transfer stops the run; earlier transfers stay applied. The caller gets
    DistributionInterrupted carrying a receipt of who was and was not paid.
ATOMIC: the whole plan goes to the ledger as one batch. A failed transfer
    leaves every balance untouched and the ledger error propagates as is.

=== PURE FUNCTIONS ===

    compute_share(balance, total_revenue, total_supply) -> int
    compute_shares(holders, total_revenue, total_supply) -> DistributionPlan

Both are trivially testable - no ledger needed.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .core import (
    LedgerAdapter, Transfer, TransferRecord,
    AgroTokenError, LedgerError,
    InvalidOwner, InvalidRevenueAmount, ZeroSupply, InvalidSnapshot,
    require_amount,
)
from .clock import Clock, SystemClock
from .events import EventNotifier, NullNotifier, RevenueDistributed, DistributionIncomplete
from .lot import Lot


class DistributionPolicy(Enum):
    """
    How the per-holder transfers of one distribution are submitted.

    SEQUENTIAL: One transfer per holder; partial distribution is possible.
    ATOMIC: One batch for all holders; all are paid or none are.
    """
    SEQUENTIAL = "sequential"
    ATOMIC = "atomic"


@dataclass(frozen=True, slots=True)
class HolderBalance:
    """One entry of a holder snapshot: who gets paid and the token balance they hold."""
    account: str
    balance: int

    def __post_init__(self):
        if not self.account or not self.account.strip():
            raise ValueError("Holder account cannot be empty")
        require_amount(self.balance, "holder balance")


@dataclass(frozen=True, slots=True)
class Payout:
    """A holder's computed share of a distribution."""
    account: str
    balance: int
    share: int


@dataclass(frozen=True, slots=True)
class DistributionPlan:
    """
    The computed outcome of a distribution, before any transfer.

    Attributes:
        total_revenue: Amount being distributed
        total_supply: Token supply the shares were computed against
        payouts: One Payout per holder, in snapshot order
    """
    total_revenue: int
    total_supply: int
    payouts: Tuple[Payout, ...]

    @property
    def distributed(self) -> int:
        """Sum of all shares."""
        return sum(p.share for p in self.payouts)

    @property
    def dust(self) -> int:
        """Revenue left undistributed by truncation."""
        return self.total_revenue - self.distributed

    @property
    def shares(self) -> Tuple[int, ...]:
        return tuple(p.share for p in self.payouts)

    def transfers(self, source_account: str, memo: str = "") -> Tuple[Transfer, ...]:
        """Build one Transfer per payout, zero shares included."""
        return tuple(
            Transfer(source=source_account, dest=p.account, amount=p.share, memo=memo)
            for p in self.payouts
        )


@dataclass(frozen=True, slots=True)
class DistributionReceipt:
    """
    What a distribution actually did.

    A receipt is complete when every payout in the plan has a matching
    transfer record; an interrupted sequential run produces an incomplete one.

    Attributes:
        lot: Address of the lot
        source_account: Account revenue was paid from
        plan: Shares computed for every holder
        records: Ledger records of the transfers that were applied, in order
        policy: Policy the distribution ran under
        timestamp: When the distribution finished (or stopped)
    """
    lot: str
    source_account: str
    plan: DistributionPlan
    records: Tuple[TransferRecord, ...]
    policy: DistributionPolicy
    timestamp: datetime

    @property
    def complete(self) -> bool:
        return len(self.records) == len(self.plan.payouts)

    @property
    def paid(self) -> Tuple[Payout, ...]:
        """Payouts whose transfer was applied."""
        return self.plan.payouts[:len(self.records)]

    @property
    def unpaid(self) -> Tuple[Payout, ...]:
        """Payouts not applied, starting with the one that failed."""
        return self.plan.payouts[len(self.records):]

    @property
    def amounts(self) -> Tuple[int, ...]:
        """Amounts of the issued transfers."""
        return tuple(r.amount for r in self.records)

    @property
    def amount_paid(self) -> int:
        return sum(self.amounts)

    @property
    def dust(self) -> int:
        return self.plan.dust

    def __repr__(self) -> str:
        status = "complete" if self.complete else "INCOMPLETE"
        return (f"DistributionReceipt(lot={self.lot[:12]}, {len(self.records)}/"
                f"{len(self.plan.payouts)} paid, {self.amount_paid}/"
                f"{self.plan.total_revenue}, dust={self.dust}, {status})")


class DistributionInterrupted(AgroTokenError):
    """
    Raised when a sequential distribution stops at a failed transfer.

    Transfers before the failure remain applied. The ledger error is chained
    as __cause__ and also available as `error`.
    """

    def __init__(self, receipt: DistributionReceipt, error: LedgerError):
        self.receipt = receipt
        self.error = error
        super().__init__(
            f"Distribution for lot {receipt.lot} stopped after "
            f"{len(receipt.records)} of {len(receipt.plan.payouts)} holders: {error}"
        )


HolderLike = Union[HolderBalance, Tuple[str, int]]


# =============================================================================
# PURE FUNCTIONS - The core logic, trivially testable
# =============================================================================

def compute_share(balance: int, total_revenue: int, total_supply: int) -> int:
    """
    Compute one holder's share. Pure function.

    Integer arithmetic, truncating toward zero (all operands are non-negative).

    Raises:
        ZeroSupply: If total_supply is zero
    """
    if total_supply == 0:
        raise ZeroSupply()
    return balance * total_revenue // total_supply


def normalize_holders(holders: Iterable[HolderLike]) -> Tuple[HolderBalance, ...]:
    """Accept HolderBalance entries or (account, balance) pairs, keeping order."""
    normalized = []
    for h in holders:
        if isinstance(h, HolderBalance):
            normalized.append(h)
        else:
            account, balance = h
            normalized.append(HolderBalance(account, balance))
    return tuple(normalized)


def check_snapshot(holders: Sequence[HolderBalance], total_supply: int) -> None:
    """
    Reject snapshots that could pay out more than the revenue.

    A snapshot may list each account once, and its balances may not add up
    to more than the supply they are divided by.

    Raises:
        InvalidSnapshot
    """
    seen = set()
    for h in holders:
        if h.account in seen:
            raise InvalidSnapshot(f"Holder {h.account} listed more than once")
        seen.add(h.account)
    held = sum(h.balance for h in holders)
    if held > total_supply:
        raise InvalidSnapshot(
            f"Snapshot balances total {held}, more than supply {total_supply}"
        )


def check_revenue(total_revenue: int) -> int:
    """
    Validate a revenue amount.

    Raises:
        TypeError: If total_revenue is not an int
        InvalidRevenueAmount: If total_revenue <= 0
        ValueError: If total_revenue exceeds the u64 range
    """
    if isinstance(total_revenue, bool) or not isinstance(total_revenue, int):
        raise TypeError(f"total_revenue must be int, got {type(total_revenue).__name__}")
    if total_revenue <= 0:
        raise InvalidRevenueAmount()
    return require_amount(total_revenue, "total_revenue")


def compute_shares(
    holders: Iterable[HolderLike],
    total_revenue: int,
    total_supply: int,
) -> DistributionPlan:
    """
    Compute every holder's share. Pure function.

    Args:
        holders: Ordered snapshot of (account, balance)
        total_revenue: Amount to distribute, > 0
        total_supply: Token supply, read once by the caller

    Returns:
        DistributionPlan with one Payout per holder, in the order given

    Invariants:
        - Same inputs always produce the same plan
        - plan.distributed <= total_revenue
        - Holders with a zero share are kept, not dropped

    Example:
        plan = compute_shares([("a", 1), ("b", 1), ("c", 1)], 10, 3)
        plan.shares == (3, 3, 3); plan.dust == 1
    """
    check_revenue(total_revenue)
    require_amount(total_supply, "total_supply")
    if total_supply == 0:
        raise ZeroSupply()
    snapshot = normalize_holders(holders)
    check_snapshot(snapshot, total_supply)

    payouts = tuple(
        Payout(
            account=h.account,
            balance=h.balance,
            share=compute_share(h.balance, total_revenue, total_supply),
        )
        for h in snapshot
    )
    return DistributionPlan(
        total_revenue=total_revenue,
        total_supply=total_supply,
        payouts=payouts,
    )


def authorize(lot: Lot, caller: str) -> None:
    """
    Check that caller owns the lot.

    Raises:
        InvalidOwner
    """
    if caller != lot.owner:
        raise InvalidOwner(f"{caller!r} is not the owner of lot {lot.address}")


def snapshot_holders(
    ledger: LedgerAdapter,
    token_accounts: Iterable[str],
    payout_accounts: Optional[Mapping[str, str]] = None,
) -> Tuple[HolderBalance, ...]:
    """
    Read balances for a caller-chosen list of token accounts.

    Args:
        ledger: Ledger holding the lot token
        token_accounts: Accounts to read, in the order they should be paid
        payout_accounts: Optional map from token account to the account that
                         receives its revenue (defaults to the token account)

    Returns:
        One HolderBalance per token account, in the order given
    """
    payout_accounts = payout_accounts or {}
    return tuple(
        HolderBalance(
            account=payout_accounts.get(account, account),
            balance=ledger.balance_of(account),
        )
        for account in token_accounts
    )


# =============================================================================
# ORCHESTRATOR - Connects the pure functions to a ledger
# =============================================================================

class DistributionEngine:
    """
    Pays lot revenue out to token holders.

    Features:
    - Owner-only invocation, checked before anything is read or moved
    - Total supply read once per distribution
    - Explicit transfer policy (sequential or atomic)
    - Notification of complete and incomplete distributions

    Example:
        engine = DistributionEngine(ledger, notifier=events, clock=clock)
        receipt = engine.distribute(
            lot, caller="farmer", total_revenue=100,
            holders=[("alice_usdc", 600), ("bob_usdc", 400)],
            source_account="farmer_usdc",
        )
        receipt.amounts == (60, 40)
    """

    def __init__(
        self,
        ledger: LedgerAdapter,
        notifier: Optional[EventNotifier] = None,
        clock: Optional[Clock] = None,
        policy: DistributionPolicy = DistributionPolicy.SEQUENTIAL,
        verbose: bool = False,
    ):
        """
        Args:
            ledger: Ledger used for the supply read and the transfers
            notifier: Receives RevenueDistributed / DistributionIncomplete
            clock: Time source for notification timestamps
            policy: Default transfer policy
            verbose: Print a summary line per distribution
        """
        self.ledger = ledger
        self.notifier = notifier if notifier is not None else NullNotifier()
        self.clock = clock if clock is not None else SystemClock()
        self.policy = policy
        self.verbose = verbose

    def plan(
        self,
        lot: Lot,
        caller: str,
        total_revenue: int,
        holders: Iterable[HolderLike],
    ) -> DistributionPlan:
        """
        Authorize and compute shares without moving anything.

        Raises:
            InvalidOwner, InvalidRevenueAmount, ZeroSupply, InvalidSnapshot
        """
        authorize(lot, caller)
        check_revenue(total_revenue)
        total_supply = self.ledger.total_supply(lot.token_mint)
        if total_supply == 0:
            raise ZeroSupply(f"Mint {lot.token_mint} has zero supply")
        return compute_shares(holders, total_revenue, total_supply)

    def distribute(
        self,
        lot: Lot,
        caller: str,
        total_revenue: int,
        holders: Iterable[HolderLike],
        source_account: str,
        policy: Optional[DistributionPolicy] = None,
    ) -> DistributionReceipt:
        """
        Distribute total_revenue from source_account to holders.

        Args:
            lot: Lot whose revenue is distributed
            caller: Identity invoking the distribution; must be lot.owner
            total_revenue: Amount to distribute, > 0
            holders: Ordered snapshot of (account, balance); completeness is
                     the caller's responsibility
            source_account: Account paying the revenue; keeps the dust
            policy: Overrides the engine's default policy for this call

        Returns:
            A complete DistributionReceipt

        Raises:
            InvalidOwner, InvalidRevenueAmount, ZeroSupply, InvalidSnapshot:
                Nothing was transferred.
            DistributionInterrupted: SEQUENTIAL run stopped part-way.
            LedgerError: ATOMIC batch was rejected; nothing was transferred.
        """
        policy = policy or self.policy
        plan = self.plan(lot, caller, total_revenue, holders)
        transfers = plan.transfers(source_account, memo=f"revenue:{lot.address}")

        if policy is DistributionPolicy.ATOMIC:
            records = self.ledger.transfer_batch(transfers, caller)
        else:
            records = self._transfer_sequentially(lot, plan, transfers, caller, source_account)

        timestamp = self.clock.now()
        receipt = DistributionReceipt(
            lot=lot.address,
            source_account=source_account,
            plan=plan,
            records=tuple(records),
            policy=policy,
            timestamp=timestamp,
        )
        if self.verbose:
            print(f"💰 Distributed {receipt.amount_paid}/{total_revenue} to "
                  f"{len(records)} holders of {lot.token_mint} (dust={plan.dust})")
        self.notifier.emit(RevenueDistributed(
            lot=lot.address,
            total_revenue=total_revenue,
            timestamp=timestamp,
        ))
        return receipt

    def _transfer_sequentially(
        self,
        lot: Lot,
        plan: DistributionPlan,
        transfers: Sequence[Transfer],
        caller: str,
        source_account: str,
    ) -> List[TransferRecord]:
        records: List[TransferRecord] = []
        for t in transfers:
            try:
                records.append(
                    self.ledger.transfer(t.source, t.dest, t.amount, caller, memo=t.memo)
                )
            except LedgerError as exc:
                timestamp = self.clock.now()
                receipt = DistributionReceipt(
                    lot=lot.address,
                    source_account=source_account,
                    plan=plan,
                    records=tuple(records),
                    policy=DistributionPolicy.SEQUENTIAL,
                    timestamp=timestamp,
                )
                if self.verbose:
                    print(f"✗ INCOMPLETE: {len(records)}/{len(transfers)} holders paid: {exc}")
                self.notifier.emit(DistributionIncomplete(
                    lot=lot.address,
                    total_revenue=plan.total_revenue,
                    paid=len(records),
                    remaining=len(transfers) - len(records),
                    error=str(exc),
                    timestamp=timestamp,
                ))
                raise DistributionInterrupted(receipt, exc) from exc
        return records
