"""
Core types and pure functions for the lot revenue system.

This module provides the foundational pieces shared by every component:
1. Protocols: LedgerAdapter for balance reads and transfers
2. Immutable data structures: Transfer, TransferRecord
3. Exceptions: AgroTokenError and the lot/ledger/oracle error families
4. Validation helpers for u64 amounts and fixed-width identities
5. Deterministic address derivation for stored records

Nothing in this module mutates state.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
import hashlib
import math
from typing import (
    Dict, Sequence, Tuple, Optional, Protocol, runtime_checkable,
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Namespace tag mixed into every lot address.
LOT_SEED = b"lot"

# Program namespace; two registries with different namespaces never collide.
DEFAULT_NAMESPACE = "agrotoken"

# Lot names are bounded by their encoded size, not their character count.
MAX_LOT_NAME_BYTES = 40

# Owner and mint identities are stored in fixed 32-byte fields.
IDENTITY_BYTES = 32

# Amounts are unsigned 64-bit, timestamps signed 64-bit.
U64_MAX = 2 ** 64 - 1
I64_MIN = -(2 ** 63)
I64_MAX = 2 ** 63 - 1


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Mapping from account address to token balance.
Balances = Dict[str, int]


# ============================================================================
# EXCEPTIONS
# ============================================================================

class AgroTokenError(Exception):
    """Base exception for everything raised by this package."""
    pass


class LotError(AgroTokenError):
    """
    Validation or authorization failure for a lot operation.

    Subclasses carry a fixed human-readable message; callers may pass a more
    specific one.
    """
    message = "Lot operation failed."

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or self.message)


class InsufficientYield(LotError):
    """Raised when a lot is registered with a non-positive yield estimate."""
    message = "Insufficient yield estimate for the lot."


class InvalidHarvestTime(LotError):
    """Raised when a lot's harvest time is not strictly in the future."""
    message = "Harvest time must be in the future."


class LotNameTooLong(LotError):
    """Raised when a lot name does not fit its fixed storage field."""
    message = f"Lot name must be at most {MAX_LOT_NAME_BYTES} bytes."


class LotAlreadyExists(LotError):
    """Raised when the owner's lot address is already allocated."""
    message = "A lot already exists for this owner."


class LotNotFound(LotError):
    """Raised when no lot is stored at the requested address."""
    message = "No lot exists at this address."


class InvalidRevenueAmount(LotError):
    """Raised when a distribution is requested for a non-positive revenue."""
    message = "Revenue must be greater than zero."


class InvalidOwner(LotError):
    """Raised when someone other than the lot owner triggers a distribution."""
    message = "Unauthorized owner for this action."


class ZeroSupply(LotError):
    """Raised when the lot token has no supply to divide revenue by."""
    message = "Token supply is zero; shares are undefined."


class InvalidSnapshot(LotError):
    """Raised when a holder snapshot could over-allocate revenue."""
    message = "Holder snapshot is inconsistent with the token supply."


class LedgerError(AgroTokenError):
    """Base exception for failures reported by the token ledger."""
    pass


class InsufficientFunds(LedgerError):
    """Raised when a transfer exceeds the source account's balance."""
    pass


class AccountFrozen(LedgerError):
    """Raised when a transfer touches a frozen account."""
    pass


class AccountNotFound(LedgerError):
    """Raised when an operation names an account the ledger does not know."""
    pass


class MintNotRegistered(LedgerError):
    """Raised when an operation names a mint the ledger does not know."""
    pass


class MintMismatch(LedgerError):
    """Raised when a transfer's source and destination hold different mints."""
    pass


class OwnerMismatch(LedgerError):
    """Raised when the transfer authority does not own the source account."""
    pass


class OracleError(AgroTokenError):
    """Base exception for external data calls."""
    pass


class MissingSigner(OracleError):
    """Raised when an oracle call has no signing caller."""
    pass


class MalformedOracle(OracleError):
    """Raised when the referenced external program is not usable."""
    pass


# ============================================================================
# VALIDATION HELPERS
# ============================================================================

def require_amount(value: int, name: str = "amount") -> int:
    """
    Check that value is an int in the u64 range and return it.

    Raises:
        TypeError: If value is not an int (bool is rejected too)
        ValueError: If value is negative or exceeds U64_MAX
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be int, got {type(value).__name__}")
    if value < 0 or value > U64_MAX:
        raise ValueError(f"{name} must be within u64 range, got {value}")
    return value


def encode_identity(identity: str, name: str = "identity") -> bytes:
    """
    Encode an account identity into its fixed-width storage form.

    Identities are UTF-8 strings of 1 to IDENTITY_BYTES bytes. NUL is the
    padding byte of the stored field, so it may not appear in an identity.
    """
    if not isinstance(identity, str) or not identity.strip():
        raise ValueError(f"{name} cannot be empty")
    if "\x00" in identity:
        raise ValueError(f"{name} cannot contain NUL characters")
    raw = identity.encode("utf-8")
    if len(raw) > IDENTITY_BYTES:
        raise ValueError(
            f"{name} must encode to at most {IDENTITY_BYTES} bytes, got {len(raw)}"
        )
    return raw


def to_unix_timestamp(moment: datetime) -> int:
    """
    Convert a datetime into whole Unix seconds (i64).

    Naive datetimes are taken as UTC, matching the ledger clock.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    seconds = math.floor(moment.timestamp())
    if seconds < I64_MIN or seconds > I64_MAX:
        raise ValueError(f"Timestamp out of i64 range: {moment}")
    return seconds


def from_unix_timestamp(seconds: int) -> datetime:
    """Inverse of to_unix_timestamp; returns a naive UTC datetime."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)


def derive_lot_address(owner: str, namespace: str = DEFAULT_NAMESPACE) -> str:
    """
    Derive the storage address of an owner's lot.

    The address is a content hash of the seed, the owner identity and the
    namespace, so the same owner always maps to the same record and one owner
    can hold only one lot per namespace.
    """
    owner_raw = encode_identity(owner, "owner")
    content = LOT_SEED + b"|" + owner_raw + b"|" + namespace.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


# ============================================================================
# TRANSFERS
# ============================================================================

@dataclass(frozen=True, slots=True)
class Transfer:
    """
    A requested movement of tokens between two accounts.

    Attributes:
        source: Account debited.
        dest: Account credited.
        amount: Quantity to move (u64; zero is a valid no-op transfer).
        memo: Optional free-text reference carried into the transaction log.
    """
    source: str
    dest: str
    amount: int
    memo: str = ""

    def __post_init__(self):
        if not self.source or not self.source.strip():
            raise ValueError("Transfer source cannot be empty")
        if not self.dest or not self.dest.strip():
            raise ValueError("Transfer dest cannot be empty")
        require_amount(self.amount, "Transfer amount")

    def __repr__(self) -> str:
        return f"Transfer({self.amount}: {self.source}→{self.dest})"


@dataclass(frozen=True, slots=True)
class TransferRecord:
    """
    An applied transfer as written to the ledger's transaction log.

    Attributes:
        transfer: The transfer that was applied.
        mint: Mint of the accounts involved.
        sequence_number: Monotonic position within the ledger's log.
        batch_id: Sequence number of the first record of the batch this one
                  was applied with (equal to sequence_number for single transfers).
    """
    transfer: Transfer
    mint: str
    sequence_number: int
    batch_id: int

    @property
    def source(self) -> str:
        return self.transfer.source

    @property
    def dest(self) -> str:
        return self.transfer.dest

    @property
    def amount(self) -> int:
        return self.transfer.amount


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerAdapter(Protocol):
    """
    Interface to the external token ledger.

    Every call is atomic: a transfer is either fully applied or raises a
    LedgerError without touching any balance. transfer_batch extends this to
    a whole sequence of transfers.
    """

    def balance_of(self, account: str) -> int:
        """Return the token balance held by an account."""
        ...

    def total_supply(self, mint: str) -> int:
        """Return the outstanding supply of a mint."""
        ...

    def transfer(
        self, source: str, dest: str, amount: int, authority: str, memo: str = "",
    ) -> TransferRecord:
        """Move amount from source to dest, authorised by the source's owner."""
        ...

    def transfer_batch(
        self,
        transfers: Sequence[Transfer],
        authority: str,
    ) -> Tuple[TransferRecord, ...]:
        """Apply all transfers or none of them."""
        ...
