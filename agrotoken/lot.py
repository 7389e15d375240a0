"""
lot.py - Lot records and the Lot Registry

=== LOT MODEL ===

A Lot has:
    address: str            - Derived from the owner (one lot per owner)
    owner: str              - Only identity allowed to distribute revenue
    name: str               - Label, at most 40 bytes of UTF-8
    yield_estimate: int     - Advisory, must be > 0 at registration
    harvest_time: datetime  - Must be strictly after registration time
    token_mint: str         - Token whose holders share the lot's revenue

Lots are created once and never updated or deleted. Harvest times are stored
with whole-second precision.

=== STORED LAYOUT ===

Each lot occupies exactly LOT_ACCOUNT_SIZE bytes, little-endian:

    discriminator   8 bytes   sha256(b"account:Lot")[:8]
    owner          32 bytes   UTF-8, NUL padded
    name length     4 bytes   u32
    name           40 bytes   UTF-8, NUL padded
    yield_estimate  8 bytes   u64
    harvest_time    8 bytes   i64 Unix seconds
    token_mint     32 bytes   UTF-8, NUL padded
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, List, Optional
import hashlib
import struct

from .core import (
    DEFAULT_NAMESPACE, IDENTITY_BYTES, MAX_LOT_NAME_BYTES,
    InsufficientYield, InvalidHarvestTime, LotNameTooLong,
    LotAlreadyExists, LotNotFound, MintNotRegistered,
    derive_lot_address, encode_identity, require_amount,
    to_unix_timestamp, from_unix_timestamp,
)
from .clock import Clock, SystemClock
from .events import EventNotifier, LotInitialized, NullNotifier
from .storage import AccountStore, InMemoryAccountStore, AddressInUse


LOT_DISCRIMINATOR = hashlib.sha256(b"account:Lot").digest()[:8]

_LOT_LAYOUT = struct.Struct(f"<8s{IDENTITY_BYTES}sI{MAX_LOT_NAME_BYTES}sQq{IDENTITY_BYTES}s")

LOT_ACCOUNT_SIZE = _LOT_LAYOUT.size


@dataclass(frozen=True, slots=True)
class Lot:
    """A registered agricultural lot. Immutable once created."""
    address: str
    owner: str
    name: str
    yield_estimate: int
    harvest_time: datetime
    token_mint: str

    def __post_init__(self):
        encode_identity(self.owner, "owner")
        encode_identity(self.token_mint, "token_mint")
        require_amount(self.yield_estimate, "yield_estimate")
        if not isinstance(self.harvest_time, datetime):
            raise TypeError(
                f"harvest_time must be datetime, got {type(self.harvest_time).__name__}"
            )
        if not isinstance(self.name, str):
            raise TypeError(f"name must be str, got {type(self.name).__name__}")
        size = len(self.name.encode("utf-8"))
        if size > MAX_LOT_NAME_BYTES:
            raise LotNameTooLong(
                f"Lot name is {size} bytes; at most {MAX_LOT_NAME_BYTES} allowed"
            )


# =============================================================================
# PURE FUNCTIONS
# =============================================================================

def check_lot_terms(yield_estimate: int, harvest_time: datetime, now: datetime) -> None:
    """
    Validate the economic terms of a new lot. Pure function.

    Checks run in a fixed order so the same bad input always reports the
    same error: yield first, then harvest time. Times are compared in whole
    Unix seconds, the precision they are stored with; naive and aware
    datetimes may be mixed.

    Raises:
        InsufficientYield: yield_estimate == 0
        InvalidHarvestTime: harvest_time <= now (in whole seconds)
    """
    if isinstance(yield_estimate, bool) or not isinstance(yield_estimate, int):
        raise TypeError(f"yield_estimate must be int, got {type(yield_estimate).__name__}")
    if yield_estimate <= 0:
        raise InsufficientYield()
    require_amount(yield_estimate, "yield_estimate")
    if not isinstance(harvest_time, datetime):
        raise TypeError(f"harvest_time must be datetime, got {type(harvest_time).__name__}")
    if to_unix_timestamp(harvest_time) <= to_unix_timestamp(now):
        raise InvalidHarvestTime(
            f"Harvest time must be in the future: {harvest_time} <= {now}"
        )


def encode_lot(lot: Lot) -> bytes:
    """Serialize a lot into its fixed-size stored form."""
    name_raw = lot.name.encode("utf-8")
    return _LOT_LAYOUT.pack(
        LOT_DISCRIMINATOR,
        encode_identity(lot.owner, "owner"),
        len(name_raw),
        name_raw,
        lot.yield_estimate,
        to_unix_timestamp(lot.harvest_time),
        encode_identity(lot.token_mint, "token_mint"),
    )


def decode_lot(address: str, data: bytes) -> Lot:
    """
    Rebuild a lot from its stored form.

    Raises:
        ValueError: If data has the wrong size or discriminator
    """
    if len(data) != LOT_ACCOUNT_SIZE:
        raise ValueError(f"Lot record must be {LOT_ACCOUNT_SIZE} bytes, got {len(data)}")
    disc, owner, name_len, name, yield_estimate, harvest_ts, mint = _LOT_LAYOUT.unpack(data)
    if disc != LOT_DISCRIMINATOR:
        raise ValueError(f"Record at {address} is not a lot")
    if name_len > MAX_LOT_NAME_BYTES:
        raise ValueError(f"Corrupt name length {name_len} at {address}")
    return Lot(
        address=address,
        owner=owner.rstrip(b"\x00").decode("utf-8"),
        name=name[:name_len].decode("utf-8"),
        yield_estimate=yield_estimate,
        harvest_time=from_unix_timestamp(harvest_ts),
        token_mint=mint.rstrip(b"\x00").decode("utf-8"),
    )


# =============================================================================
# REGISTRY
# =============================================================================

class LotRegistry:
    """
    Creates and stores lots, one per owner.

    The registry owns the mapping from lot address to lot metadata. It is
    append-only: there is no update or delete.

    Example:
        registry = LotRegistry(clock=FixedClock(datetime(2025, 1, 1)))
        lot = registry.register(
            owner="farmer",
            name="North Field Wheat",
            yield_estimate=1200,
            harvest_time=datetime(2025, 9, 1),
            token_mint="WHEAT",
        )
        registry.lot_for_owner("farmer") == lot
    """

    def __init__(
        self,
        store: Optional[AccountStore] = None,
        clock: Optional[Clock] = None,
        notifier: Optional[EventNotifier] = None,
        ledger=None,
        namespace: str = DEFAULT_NAMESPACE,
        verbose: bool = False,
    ):
        """
        Args:
            store: Record store (in-memory if not provided)
            clock: Time source for the harvest-time check (SystemClock if not provided)
            notifier: Receives LotInitialized events
            ledger: Optional token ledger; when given, token mints must be registered on it
            namespace: Mixed into every derived address
            verbose: Print a line per registration
        """
        self.store = store if store is not None else InMemoryAccountStore()
        self.clock = clock if clock is not None else SystemClock()
        self.notifier = notifier if notifier is not None else NullNotifier()
        self.ledger = ledger
        self.namespace = namespace
        self.verbose = verbose
        self._addresses: List[str] = []

    def address_for(self, owner: str) -> str:
        """Return the address an owner's lot lives at (whether or not it exists)."""
        return derive_lot_address(owner, self.namespace)

    def register(
        self,
        owner: str,
        name: str,
        yield_estimate: int,
        harvest_time: datetime,
        token_mint: str,
        now: Optional[datetime] = None,
    ) -> Lot:
        """
        Register a new lot for owner.

        Args:
            owner: Identity creating (and paying for) the lot
            name: Label, at most 40 bytes of UTF-8
            yield_estimate: Advisory yield, must be > 0
            harvest_time: Must be strictly after now
            token_mint: Token whose holders share the lot's revenue
            now: Current time; read from the registry clock if omitted

        Returns:
            The stored Lot, with harvest_time as naive UTC in whole seconds

        Raises:
            InsufficientYield, InvalidHarvestTime, LotNameTooLong,
            MintNotRegistered, LotAlreadyExists
        """
        if now is None:
            now = self.clock.now()
        check_lot_terms(yield_estimate, harvest_time, now)
        harvest_time = from_unix_timestamp(to_unix_timestamp(harvest_time))

        lot = Lot(
            address=self.address_for(owner),
            owner=owner,
            name=name,
            yield_estimate=yield_estimate,
            harvest_time=harvest_time,
            token_mint=token_mint,
        )
        if self.ledger is not None and not self.ledger.has_mint(token_mint):
            raise MintNotRegistered(f"Mint {token_mint} not registered")

        try:
            self.store.create(lot.address, LOT_ACCOUNT_SIZE)
        except AddressInUse as exc:
            raise LotAlreadyExists(f"Owner {owner} already has a lot at {lot.address}") from exc
        self.store.write(lot.address, encode_lot(lot))
        self._addresses.append(lot.address)

        if self.verbose:
            print(f"🌾 Lot registered: {name!r} owner={owner} mint={token_mint} "
                  f"yield={yield_estimate} harvest={harvest_time.isoformat()}")

        self.notifier.emit(LotInitialized(
            name=name,
            owner=owner,
            yield_estimate=yield_estimate,
            harvest_time=harvest_time,
        ))
        return lot

    def get(self, address: str) -> Lot:
        """
        Load the lot stored at address.

        Raises:
            LotNotFound: If nothing is stored there
        """
        if not self.store.exists(address):
            raise LotNotFound(f"No lot at {address}")
        return decode_lot(address, self.store.read(address))

    def lot_for_owner(self, owner: str) -> Lot:
        """Load the lot registered by owner."""
        return self.get(self.address_for(owner))

    def __contains__(self, address: str) -> bool:
        return self.store.exists(address)

    def __iter__(self) -> Iterator[Lot]:
        """Iterate over lots registered through this registry, oldest first."""
        for address in self._addresses:
            yield self.get(address)

    def __len__(self) -> int:
        return len(self._addresses)

    def __repr__(self):
        return f"LotRegistry({len(self._addresses)} lots, namespace={self.namespace!r})"
