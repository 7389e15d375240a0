"""
Tests for core types and helpers: amounts, identities, timestamps,
address derivation, Transfer and the exception hierarchy.
"""
import pytest
from datetime import datetime, timezone

from agrotoken import (
    Transfer, TransferRecord, LedgerAdapter, TokenLedger,
    AgroTokenError, LotError, LedgerError, OracleError,
    InsufficientYield, InvalidHarvestTime, LotNameTooLong, LotAlreadyExists,
    LotNotFound, InvalidRevenueAmount, InvalidOwner, ZeroSupply, InvalidSnapshot,
    InsufficientFunds, AccountFrozen, AccountNotFound, MintNotRegistered,
    MintMismatch, OwnerMismatch, MissingSigner, MalformedOracle,
    derive_lot_address, U64_MAX, DEFAULT_NAMESPACE,
)
from agrotoken.core import (
    require_amount, encode_identity, to_unix_timestamp, from_unix_timestamp,
)

from tests.fake_ledger import FakeLedger


class TestRequireAmount:

    def test_accepts_bounds(self):
        assert require_amount(0) == 0
        assert require_amount(U64_MAX) == U64_MAX

    @pytest.mark.parametrize("value", [-1, U64_MAX + 1])
    def test_out_of_range(self, value):
        with pytest.raises(ValueError, match="u64"):
            require_amount(value)

    @pytest.mark.parametrize("value", [1.0, "1", True, None])
    def test_non_int_rejected(self, value):
        with pytest.raises(TypeError):
            require_amount(value)


class TestEncodeIdentity:

    def test_utf8_bytes(self):
        assert encode_identity("farmer") == b"farmer"

    def test_exactly_32_bytes(self):
        assert len(encode_identity("x" * 32)) == 32

    def test_too_long(self):
        with pytest.raises(ValueError, match="at most 32 bytes"):
            encode_identity("x" * 33)

    def test_multibyte_counts_bytes(self):
        with pytest.raises(ValueError):
            encode_identity("é" * 17)

    @pytest.mark.parametrize("value", ["farmer\x00", "\x00farmer", "far\x00mer"])
    def test_nul_rejected(self, value):
        with pytest.raises(ValueError, match="NUL"):
            encode_identity(value)

    @pytest.mark.parametrize("value", ["", "   "])
    def test_empty(self, value):
        with pytest.raises(ValueError, match="cannot be empty"):
            encode_identity(value)


class TestTimestamps:

    def test_naive_taken_as_utc(self):
        assert to_unix_timestamp(datetime(1970, 1, 2)) == 86400

    def test_aware_converted(self):
        aware = datetime(1970, 1, 2, tzinfo=timezone.utc)
        assert to_unix_timestamp(aware) == 86400

    def test_sub_second_truncated(self):
        assert to_unix_timestamp(datetime(1970, 1, 1, 0, 0, 1, 999999)) == 1

    def test_before_epoch_floors(self):
        assert to_unix_timestamp(datetime(1969, 12, 31, 23, 59, 59, 500000)) == -1

    def test_from_unix_is_naive_utc(self):
        moment = from_unix_timestamp(86400)
        assert moment == datetime(1970, 1, 2)
        assert moment.tzinfo is None


class TestDeriveLotAddress:

    def test_deterministic(self):
        assert derive_lot_address("farmer") == derive_lot_address("farmer")

    def test_hex_sha256(self):
        address = derive_lot_address("farmer")
        assert len(address) == 64
        int(address, 16)

    def test_distinct_owners(self):
        assert derive_lot_address("alice") != derive_lot_address("bob")

    def test_namespace_separates(self):
        assert derive_lot_address("farmer") == derive_lot_address("farmer", DEFAULT_NAMESPACE)
        assert derive_lot_address("farmer") != derive_lot_address("farmer", "other")

    def test_separator_prevents_ambiguity(self):
        assert derive_lot_address("ab", "c") != derive_lot_address("a", "bc")

    def test_invalid_owner(self):
        with pytest.raises(ValueError):
            derive_lot_address("")


class TestTransfer:

    def test_create(self):
        t = Transfer("a", "b", 5, memo="x")
        assert (t.source, t.dest, t.amount, t.memo) == ("a", "b", 5, "x")

    def test_zero_allowed(self):
        assert Transfer("a", "b", 0).amount == 0

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            Transfer("a", "b", -1)

    @pytest.mark.parametrize("source,dest", [("", "b"), ("a", ""), (" ", "b")])
    def test_empty_accounts(self, source, dest):
        with pytest.raises(ValueError, match="cannot be empty"):
            Transfer(source, dest, 1)

    def test_frozen(self):
        t = Transfer("a", "b", 1)
        with pytest.raises(AttributeError):
            t.amount = 2

    def test_record_properties(self):
        record = TransferRecord(Transfer("a", "b", 3), "USDC", 7, 7)
        assert (record.source, record.dest, record.amount) == ("a", "b", 3)


class TestLedgerAdapterProtocol:

    def test_token_ledger_conforms(self):
        assert isinstance(TokenLedger("x"), LedgerAdapter)

    def test_fake_ledger_conforms(self):
        assert isinstance(FakeLedger(), LedgerAdapter)


class TestExceptionHierarchy:

    @pytest.mark.parametrize("exc", [
        InsufficientYield, InvalidHarvestTime, LotNameTooLong, LotAlreadyExists,
        LotNotFound, InvalidRevenueAmount, InvalidOwner, ZeroSupply, InvalidSnapshot,
    ])
    def test_lot_errors(self, exc):
        assert issubclass(exc, LotError)
        assert issubclass(exc, AgroTokenError)

    @pytest.mark.parametrize("exc", [
        InsufficientFunds, AccountFrozen, AccountNotFound, MintNotRegistered,
        MintMismatch, OwnerMismatch,
    ])
    def test_ledger_errors(self, exc):
        assert issubclass(exc, LedgerError)
        assert not issubclass(exc, LotError)

    @pytest.mark.parametrize("exc", [MissingSigner, MalformedOracle])
    def test_oracle_errors(self, exc):
        assert issubclass(exc, OracleError)

    def test_default_messages(self):
        assert str(InsufficientYield()) == "Insufficient yield estimate for the lot."
        assert str(InvalidHarvestTime()) == "Harvest time must be in the future."
        assert str(InvalidRevenueAmount()) == "Revenue must be greater than zero."
        assert str(InvalidOwner()) == "Unauthorized owner for this action."

    def test_detail_overrides_message(self):
        assert str(InvalidOwner("bob is not the owner")) == "bob is not the owner"
