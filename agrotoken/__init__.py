"""
agrotoken - Tokenized Agricultural Lots and Revenue Distribution

Registers agricultural lots whose economic interest is held as fungible
tokens, and pays sale revenue out to token holders in proportion to their
holdings.

Usage:
    from datetime import datetime
    from agrotoken import (
        TokenLedger, LotRegistry, DistributionEngine, EventLog, FixedClock,
        snapshot_holders,
    )

    clock = FixedClock(datetime(2025, 3, 1))
    events = EventLog()
    ledger = TokenLedger("main")

    ledger.create_mint("WHEAT", authority="farmer")
    ledger.create_mint("USDC", authority="bank")
    ledger.create_account("farmer_usdc", "USDC", owner="farmer")
    for holder in ("alice", "bob"):
        ledger.create_account(f"{holder}_wheat", "WHEAT", owner=holder)
        ledger.create_account(f"{holder}_usdc", "USDC", owner=holder)
    ledger.mint_to("WHEAT", "alice_wheat", 600, authority="farmer")
    ledger.mint_to("WHEAT", "bob_wheat", 400, authority="farmer")
    ledger.mint_to("USDC", "farmer_usdc", 100, authority="bank")

    registry = LotRegistry(clock=clock, notifier=events, ledger=ledger)
    lot = registry.register("farmer", "North Field", 1200, datetime(2025, 9, 1), "WHEAT")

    holders = snapshot_holders(
        ledger, ["alice_wheat", "bob_wheat"],
        payout_accounts={"alice_wheat": "alice_usdc", "bob_wheat": "bob_usdc"},
    )
    engine = DistributionEngine(ledger, notifier=events, clock=clock)
    receipt = engine.distribute(lot, "farmer", 100, holders, "farmer_usdc")
    # receipt.amounts == (60, 40), receipt.dust == 0
"""

# Core types
from .core import (
    LedgerAdapter,
    Transfer,
    TransferRecord,
    AgroTokenError,
    LotError,
    InsufficientYield,
    InvalidHarvestTime,
    LotNameTooLong,
    LotAlreadyExists,
    LotNotFound,
    InvalidRevenueAmount,
    InvalidOwner,
    ZeroSupply,
    InvalidSnapshot,
    LedgerError,
    InsufficientFunds,
    AccountFrozen,
    AccountNotFound,
    MintNotRegistered,
    MintMismatch,
    OwnerMismatch,
    OracleError,
    MissingSigner,
    MalformedOracle,
    derive_lot_address,
    LOT_SEED,
    DEFAULT_NAMESPACE,
    MAX_LOT_NAME_BYTES,
    IDENTITY_BYTES,
    U64_MAX,
)

# Time
from .clock import Clock, SystemClock, FixedClock

# Token ledger
from .ledger import TokenLedger, Mint, TokenAccount

# Storage
from .storage import (
    AccountStore,
    InMemoryAccountStore,
    StorageError,
    AddressInUse,
    AddressNotAllocated,
    SizeMismatch,
)

# Events
from .events import (
    LotInitialized,
    RevenueDistributed,
    DistributionIncomplete,
    EventNotifier,
    EventLog,
    NullNotifier,
)

# Lots
from .lot import (
    Lot,
    LotRegistry,
    check_lot_terms,
    encode_lot,
    decode_lot,
    LOT_ACCOUNT_SIZE,
    LOT_DISCRIMINATOR,
)

# Distribution
from .distribution import (
    DistributionEngine,
    DistributionPolicy,
    DistributionPlan,
    DistributionReceipt,
    DistributionInterrupted,
    HolderBalance,
    Payout,
    compute_share,
    compute_shares,
    snapshot_holders,
    authorize,
)

# Oracle
from .oracle import OracleProgram, NullOracle, fetch_external_data


__all__ = [
    # Core
    'LedgerAdapter', 'Transfer', 'TransferRecord',
    'AgroTokenError', 'LotError', 'InsufficientYield', 'InvalidHarvestTime',
    'LotNameTooLong', 'LotAlreadyExists', 'LotNotFound', 'InvalidRevenueAmount',
    'InvalidOwner', 'ZeroSupply', 'InvalidSnapshot',
    'LedgerError', 'InsufficientFunds', 'AccountFrozen', 'AccountNotFound',
    'MintNotRegistered', 'MintMismatch', 'OwnerMismatch',
    'OracleError', 'MissingSigner', 'MalformedOracle',
    'derive_lot_address', 'LOT_SEED', 'DEFAULT_NAMESPACE', 'MAX_LOT_NAME_BYTES',
    'IDENTITY_BYTES', 'U64_MAX',
    # Time
    'Clock', 'SystemClock', 'FixedClock',
    # Ledger
    'TokenLedger', 'Mint', 'TokenAccount',
    # Storage
    'AccountStore', 'InMemoryAccountStore', 'StorageError', 'AddressInUse',
    'AddressNotAllocated', 'SizeMismatch',
    # Events
    'LotInitialized', 'RevenueDistributed', 'DistributionIncomplete',
    'EventNotifier', 'EventLog', 'NullNotifier',
    # Lots
    'Lot', 'LotRegistry', 'check_lot_terms', 'encode_lot', 'decode_lot',
    'LOT_ACCOUNT_SIZE', 'LOT_DISCRIMINATOR',
    # Distribution
    'DistributionEngine', 'DistributionPolicy', 'DistributionPlan',
    'DistributionReceipt', 'DistributionInterrupted', 'HolderBalance', 'Payout',
    'compute_share', 'compute_shares', 'snapshot_holders', 'authorize',
    # Oracle
    'OracleProgram', 'NullOracle', 'fetch_external_data',
]

__version__ = '0.1.0'
