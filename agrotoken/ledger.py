"""
ledger.py - In-memory Token Ledger

TokenLedger is the reference implementation of the LedgerAdapter protocol.
It stands in for the external token program that holds balances for lot
tokens and revenue currencies.

Key responsibilities:
    - Registers mints and token accounts (one mint per account)
    - Tracks balances and outstanding supply per mint
    - Executes transfers atomically (single transfers and whole batches)
    - Always validates and always logs - no exceptions
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass, replace
from typing import Dict, List, Sequence, Set, Tuple, Any

from .core import (
    # Types
    Transfer, TransferRecord, Balances,
    # Exceptions
    LedgerError, InsufficientFunds, AccountFrozen, AccountNotFound,
    MintNotRegistered, MintMismatch, OwnerMismatch,
    # Helpers
    require_amount, U64_MAX,
)


@dataclass(frozen=True, slots=True)
class Mint:
    """
    Definition of a fungible token.

    Attributes:
        address: Mint identifier.
        authority: Identity allowed to issue new tokens and freeze accounts.
        decimals: Display precision; amounts are always integers of base units.
    """
    address: str
    authority: str
    decimals: int = 0


@dataclass(frozen=True, slots=True)
class TokenAccount:
    """
    A balance-holding account for exactly one mint.

    Attributes:
        address: Account identifier.
        mint: Mint this account holds.
        owner: Identity that may authorise transfers out of the account.
        is_frozen: Frozen accounts can neither send nor receive.
    """
    address: str
    mint: str
    owner: str
    is_frozen: bool = False


class TokenLedger:
    """
    Token ledger with full validation and an append-only transfer log.

    Implements the LedgerAdapter protocol.

    Design Principles:
        - Always validates: every transfer is checked for account existence,
          matching mints, frozen state, authority and balance before any
          balance changes.
        - Always logs: every applied transfer is recorded in transaction_log.

    Thread Safety:
        Not thread-safe. Each thread should maintain its own TokenLedger instance.

    Example:
        ledger = TokenLedger("main")
        ledger.create_mint("USDC", authority="issuer")
        ledger.create_account("alice_usdc", "USDC", owner="alice")
        ledger.create_account("bob_usdc", "USDC", owner="bob")
        ledger.mint_to("USDC", "alice_usdc", 1000, authority="issuer")
        ledger.transfer("alice_usdc", "bob_usdc", 100, authority="alice")
    """

    def __init__(self, name: str, verbose: bool = False):
        """
        Create a ledger.

        Args:
            name: Ledger identifier
            verbose: Print a line for every registration and transfer (default: False)
        """
        self.name = name
        self.verbose = verbose
        self.mints: Dict[str, Mint] = {}
        self.accounts: Dict[str, TokenAccount] = {}
        self.balances: Balances = {}
        self.transaction_log: List[TransferRecord] = []
        self._supply: Dict[str, int] = {}
        self._next_sequence: int = 0
        # Inverted index mapping mint -> {account -> balance} for holder lookups
        self._positions_by_mint: Dict[str, Dict[str, int]] = defaultdict(dict)

    # ========================================================================
    # LedgerAdapter PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    def balance_of(self, account: str) -> int:
        """
        Get the balance of a token account.

        Raises:
            AccountNotFound: If the account is not registered
        """
        if account not in self.accounts:
            raise AccountNotFound(f"Account {account} not registered")
        return self.balances[account]

    def total_supply(self, mint: str) -> int:
        """
        Get the outstanding supply of a mint.

        Raises:
            MintNotRegistered: If the mint is not registered
        """
        if mint not in self.mints:
            raise MintNotRegistered(f"Mint {mint} not registered")
        return self._supply[mint]

    def get_account(self, account: str) -> TokenAccount:
        """Return the TokenAccount record for an address."""
        if account not in self.accounts:
            raise AccountNotFound(f"Account {account} not registered")
        return self.accounts[account]

    def get_mint(self, mint: str) -> Mint:
        """Return the Mint record for an address."""
        if mint not in self.mints:
            raise MintNotRegistered(f"Mint {mint} not registered")
        return self.mints[mint]

    def has_mint(self, mint: str) -> bool:
        """Check if a mint is registered."""
        return mint in self.mints

    def holders_of(self, mint: str) -> Dict[str, int]:
        """
        Get all accounts with a non-zero balance of a mint.

        Uses an inverted index; the result is ordered by account address.
        """
        if mint not in self.mints:
            raise MintNotRegistered(f"Mint {mint} not registered")
        positions = self._positions_by_mint.get(mint, {})
        return {account: positions[account] for account in sorted(positions)}

    def list_accounts(self, mint: str = None) -> Set[str]:
        """List registered account addresses, optionally for one mint only."""
        if mint is None:
            return set(self.accounts)
        return {a for a, acct in self.accounts.items() if acct.mint == mint}

    def verify_supply(self) -> Dict[str, Any]:
        """
        Verify that every mint's supply equals the sum of its balances.

        Transfers redistribute balances but never create or destroy tokens;
        only mint_to changes supply.

        Returns:
            Dict with keys:
            - 'valid': bool - True if all mints reconcile
            - 'supplies': Dict[str, int] - Recorded supply for each mint
            - 'discrepancies': List[Dict] - mint, expected, actual for each mismatch
        """
        held: Dict[str, int] = defaultdict(int)
        for address in sorted(self.accounts):
            held[self.accounts[address].mint] += self.balances[address]

        discrepancies = []
        for mint, supply in self._supply.items():
            if held[mint] != supply:
                discrepancies.append({
                    'mint': mint,
                    'expected': supply,
                    'actual': held[mint],
                })

        return {
            'valid': len(discrepancies) == 0,
            'supplies': dict(self._supply),
            'discrepancies': discrepancies,
        }

    # ========================================================================
    # REGISTRATION (Mutating)
    # ========================================================================

    def create_mint(self, address: str, authority: str, decimals: int = 0) -> Mint:
        """
        Register a new mint with zero supply.

        Raises:
            ValueError: If the mint is already registered or decimals is negative
        """
        if address in self.mints:
            raise ValueError(f"Mint {address} already registered")
        if decimals < 0:
            raise ValueError(f"decimals must be non-negative, got {decimals}")
        mint = Mint(address=address, authority=authority, decimals=decimals)
        self.mints[address] = mint
        self._supply[address] = 0
        if self.verbose:
            print(f"📝 Mint created: {address} (authority={authority}, decimals={decimals})")
        return mint

    def create_account(self, address: str, mint: str, owner: str) -> TokenAccount:
        """
        Register a token account holding one mint.

        Raises:
            ValueError: If the address is already registered
            MintNotRegistered: If the mint is not registered
        """
        if address in self.accounts:
            raise ValueError(f"Account {address} already registered")
        if mint not in self.mints:
            raise MintNotRegistered(f"Mint {mint} not registered")
        account = TokenAccount(address=address, mint=mint, owner=owner)
        self.accounts[address] = account
        self.balances[address] = 0
        if self.verbose:
            print(f"📝 Account created: {address} [{mint}] owner={owner}")
        return account

    def mint_to(self, mint: str, account: str, amount: int, authority: str) -> None:
        """
        Issue new tokens into an account, increasing supply.

        Raises:
            OwnerMismatch: If authority is not the mint authority
            MintMismatch: If the account holds a different mint
            AccountFrozen: If the account is frozen
            LedgerError: If supply would leave the u64 range
        """
        require_amount(amount, "mint amount")
        mint_obj = self.get_mint(mint)
        target = self.get_account(account)
        if authority != mint_obj.authority:
            raise OwnerMismatch(f"{authority} is not the mint authority of {mint}")
        if target.mint != mint:
            raise MintMismatch(f"Account {account} holds {target.mint}, not {mint}")
        if target.is_frozen:
            raise AccountFrozen(f"Account {account} is frozen")
        if self._supply[mint] + amount > U64_MAX:
            raise LedgerError(f"Supply of {mint} would overflow")
        self._supply[mint] += amount
        self._set_balance(account, self.balances[account] + amount)
        if self.verbose:
            print(f"✓ Minted {amount} {mint} → {account}")

    def freeze_account(self, account: str, authority: str) -> None:
        """Freeze an account; only the mint authority may do so."""
        self._set_frozen(account, authority, True)

    def thaw_account(self, account: str, authority: str) -> None:
        """Unfreeze an account; only the mint authority may do so."""
        self._set_frozen(account, authority, False)

    def _set_frozen(self, account: str, authority: str, frozen: bool) -> None:
        target = self.get_account(account)
        mint_obj = self.mints[target.mint]
        if authority != mint_obj.authority:
            raise OwnerMismatch(f"{authority} is not the freeze authority of {target.mint}")
        self.accounts[account] = replace(target, is_frozen=frozen)
        if self.verbose:
            state = "frozen" if frozen else "thawed"
            print(f"⚠️  Account {account} {state}")

    # ========================================================================
    # TRANSFER EXECUTION (Mutating)
    # ========================================================================

    def transfer(
        self, source: str, dest: str, amount: int, authority: str, memo: str = "",
    ) -> TransferRecord:
        """
        Move tokens between two accounts of the same mint.

        Zero-amount transfers are validated and logged but change nothing.

        Raises:
            AccountNotFound, MintMismatch, AccountFrozen, OwnerMismatch,
            InsufficientFunds: The transfer was rejected and nothing changed.
        """
        records = self.transfer_batch([Transfer(source, dest, amount, memo)], authority)
        return records[0]

    def transfer_batch(
        self,
        transfers: Sequence[Transfer],
        authority: str,
    ) -> Tuple[TransferRecord, ...]:
        """
        Apply a sequence of transfers atomically.

        All transfers are validated against the net balance changes of the
        whole batch before any balance is touched; if one is invalid none are
        applied.

        Args:
            transfers: Transfers to apply, in order
            authority: Identity authorising every debit in the batch

        Returns:
            One TransferRecord per transfer, in the same order

        Raises:
            LedgerError subclass describing the first invalid transfer
        """
        try:
            mints = self._validate_batch(transfers, authority)
        except LedgerError as exc:
            if self.verbose:
                print(f"✗ REJECTED: {exc}")
            raise

        batch_id = self._next_sequence
        records = []
        for t, mint in zip(transfers, mints):
            if t.amount and t.source != t.dest:
                self._set_balance(t.source, self.balances[t.source] - t.amount)
                self._set_balance(t.dest, self.balances[t.dest] + t.amount)
            record = TransferRecord(
                transfer=t,
                mint=mint,
                sequence_number=self._next_sequence,
                batch_id=batch_id,
            )
            self._next_sequence += 1
            self.transaction_log.append(record)
            records.append(record)
            if self.verbose:
                print(f"✓ APPLIED: {t.amount} {mint}: {t.source} → {t.dest}")
        return tuple(records)

    def _validate_batch(self, transfers: Sequence[Transfer], authority: str) -> List[str]:
        """
        Validate a batch against all constraints.

        Checks performed, per transfer in order:
        1. Both accounts registered
        2. Same mint on both sides
        3. Neither account frozen
        4. Authority owns the source account
        5. Source balance covers the cumulative debits of the batch

        Returns:
            The mint of each transfer, in order
        """
        running: Dict[str, int] = {}
        mints = []
        for t in transfers:
            src = self.get_account(t.source)
            dst = self.get_account(t.dest)
            if src.mint != dst.mint:
                raise MintMismatch(
                    f"{t.source} holds {src.mint} but {t.dest} holds {dst.mint}"
                )
            if src.is_frozen:
                raise AccountFrozen(f"Account {t.source} is frozen")
            if dst.is_frozen:
                raise AccountFrozen(f"Account {t.dest} is frozen")
            if src.owner != authority:
                raise OwnerMismatch(f"{authority} does not own {t.source}")

            available = running.get(t.source, self.balances[t.source])
            if t.amount > available:
                raise InsufficientFunds(
                    f"{t.source}: balance {available} < transfer {t.amount}"
                )
            if t.source != t.dest:
                running[t.source] = available - t.amount
                running[t.dest] = running.get(t.dest, self.balances[t.dest]) + t.amount
            mints.append(src.mint)
        return mints

    def _set_balance(self, account: str, quantity: int) -> None:
        """Write a balance and keep the holder index in step."""
        self.balances[account] = quantity
        mint = self.accounts[account].mint
        if quantity:
            self._positions_by_mint[mint][account] = quantity
        else:
            self._positions_by_mint[mint].pop(account, None)

    def __repr__(self):
        return (f"TokenLedger({self.name!r}, {len(self.mints)} mints, "
                f"{len(self.accounts)} accounts, {len(self.transaction_log)} transfers)")
