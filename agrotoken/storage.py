"""
storage.py - Fixed-size record storage

Stands in for the external key-value store that holds lot records. Records
are addressed by deterministic keys and allocated once at a fixed size:
an allocation can be written many times but never resized or freed.
"""

from typing import Dict, Optional, Protocol, runtime_checkable

from .core import AgroTokenError


class StorageError(AgroTokenError):
    """Base exception for record storage failures."""
    pass


class AddressInUse(StorageError):
    """Raised when allocating an address that already holds a record."""
    pass


class AddressNotAllocated(StorageError):
    """Raised when reading or writing an address that was never allocated."""
    pass


class SizeMismatch(StorageError):
    """Raised when a write does not match the allocated size exactly."""
    pass


@runtime_checkable
class AccountStore(Protocol):
    """
    Protocol for record stores.

    create() reserves `size` zeroed bytes at `address`; write() replaces the
    whole record and must supply exactly that many bytes.
    """

    def create(self, address: str, size: int) -> None:
        ...

    def write(self, address: str, data: bytes) -> None:
        ...

    def read(self, address: str) -> bytes:
        ...

    def exists(self, address: str) -> bool:
        ...


class InMemoryAccountStore:
    """AccountStore backed by a dict."""

    def __init__(self):
        self._records: Dict[str, bytes] = {}

    def create(self, address: str, size: int) -> None:
        """
        Allocate a zeroed record.

        Raises:
            AddressInUse: If the address is already allocated
            ValueError: If size is not positive
        """
        if size <= 0:
            raise ValueError(f"Record size must be positive, got {size}")
        if address in self._records:
            raise AddressInUse(f"Address {address} already in use")
        self._records[address] = bytes(size)

    def write(self, address: str, data: bytes) -> None:
        """
        Overwrite an allocated record.

        Raises:
            AddressNotAllocated: If create() was never called for address
            SizeMismatch: If len(data) differs from the allocation
        """
        current = self._records.get(address)
        if current is None:
            raise AddressNotAllocated(f"Address {address} not allocated")
        if len(data) != len(current):
            raise SizeMismatch(
                f"Record at {address} is {len(current)} bytes, got {len(data)}"
            )
        self._records[address] = bytes(data)

    def read(self, address: str) -> bytes:
        data = self._get(address)
        if data is None:
            raise AddressNotAllocated(f"Address {address} not allocated")
        return data

    def exists(self, address: str) -> bool:
        return address in self._records

    def size_of(self, address: str) -> Optional[int]:
        data = self._get(address)
        return None if data is None else len(data)

    def _get(self, address: str) -> Optional[bytes]:
        return self._records.get(address)

    def __len__(self) -> int:
        return len(self._records)
