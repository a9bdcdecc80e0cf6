import pytest
from pydantic import ValidationError

from amounts import Amount
from models import (
    Account, AccountSummary, Chargeback, Deposit, Dispute, Resolve, TransactionRecord,
    TransactionType, Withdrawal
)


class TestTransactionRecord:
    """Test validation of raw input rows."""

    @pytest.mark.parametrize("raw_type", ["deposit", "DEPOSIT", "Deposit", "  deposit "])
    def test_type_is_case_insensitive(self, raw_type):
        record = TransactionRecord(type=raw_type, client="1", tx="1", amount="1")
        assert record.type == TransactionType.deposit

    def test_numeric_fields_are_parsed(self):
        record = TransactionRecord(type="withdrawal", client="65535", tx="4294967295", amount="2.5")

        assert record.client == 65535
        assert record.tx == 4294967295
        assert record.amount == "2.5"

    @pytest.mark.parametrize("field, value", [
        ("type", "borrow"),
        ("client", "65536"),
        ("client", "-1"),
        ("client", "one"),
        ("tx", "4294967296"),
        ("tx", "-1"),
        ("tx", ""),
    ])
    def test_invalid_fields(self, field, value):
        data = {"type": "deposit", "client": "1", "tx": "1", "amount": "1"}
        data[field] = value

        with pytest.raises(ValidationError):
            TransactionRecord(**data)

    def test_missing_required_field(self):
        with pytest.raises(ValidationError):
            TransactionRecord(type="deposit", client="1")

    def test_blank_amount_is_absent(self):
        record = TransactionRecord(type="dispute", client="1", tx="1", amount="  ")
        assert record.amount is None


class TestToTransaction:
    """Test conversion to typed transactions."""

    @pytest.mark.parametrize("raw_type, expected", [
        ("deposit", Deposit),
        ("withdrawal", Withdrawal),
    ])
    def test_amount_types(self, raw_type, expected):
        transaction = TransactionRecord(type=raw_type, client=1, tx=2, amount="10").to_transaction()

        assert transaction == expected(client=1, tx=2, amount=Amount.parse("10"))
        assert transaction.type == TransactionType(raw_type)

    @pytest.mark.parametrize("raw_type, expected", [
        ("dispute", Dispute),
        ("resolve", Resolve),
        ("chargeback", Chargeback),
    ])
    def test_reference_types(self, raw_type, expected):
        transaction = TransactionRecord(type=raw_type, client=1, tx=2).to_transaction()

        assert transaction == expected(client=1, tx=2)
        assert not hasattr(transaction, "amount")

    @pytest.mark.parametrize("raw_type, amount", [
        ("deposit", None),
        ("withdrawal", None),
        ("deposit", "-10"),
        ("withdrawal", "0"),
        ("deposit", "0.00001"),
        ("dispute", "10"),
        ("resolve", "10"),
        ("chargeback", "10"),
    ])
    def test_invalid_records(self, raw_type, amount):
        record = TransactionRecord(type=raw_type, client=1, tx=1, amount=amount)

        with pytest.raises(ValueError):
            record.to_transaction()


class TestAccountSummary:
    """Test report rows."""

    def test_from_account(self):
        account = Account(client=1, available=Amount.parse("1.9999"), held=Amount.parse("1"))

        summary = AccountSummary.from_account(account)

        assert summary.available == "1.9999"
        assert summary.held == "1.0000"
        assert summary.total == "2.9999"
        assert summary.locked is False

    def test_to_row(self):
        account = Account(client=7, available=Amount.parse("-2"), locked=True)

        assert AccountSummary.from_account(account).to_row() == {
            "client": 7,
            "available": "-2.0000",
            "held": "0.0000",
            "total": "-2.0000",
            "locked": "true",
        }

    def test_new_account_is_empty(self):
        account = Account(client=3)

        assert account.total == Amount.zero()
        assert account.locked is False
