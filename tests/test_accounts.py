"""
Test suite for the ATM account ledger

Tests withdrawals, deposits, atomic transfers, history and amount validation.
Validates that balances never go negative and always match the history.
"""

import pytest
from decimal import Decimal
from datetime import datetime, timedelta, timezone

from ledgerdesk.accounts import AccountLedger, TransactionKind
from ledgerdesk.credentials import IdentityKind
from ledgerdesk.errors import (
    AlreadyExistsError, AuthenticationError, InsufficientFundsError,
    NotFoundError, ValidationError
)


class StepClock:
    """Clock that advances one minute per call"""
    
    def __init__(self):
        self.current = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    
    def __call__(self):
        value = self.current
        self.current += timedelta(minutes=1)
        return value


class TestAccountLedger:
    """Test ATM ledger operations"""
    
    def setup_method(self):
        self.ledger = AccountLedger(clock=StepClock())
        self.ledger.open_account("A", "1234", "100")
        self.ledger.open_account("B", "5678", "25.50")
    
    def test_atm_scenario(self):
        """Test withdraw over balance, deposit, then transfer everything"""
        with pytest.raises(InsufficientFundsError):
            self.ledger.withdraw("A", "150")
        assert self.ledger.get_balance("A") == Decimal("100.00")
        assert self.ledger.history("A") == []
        
        assert self.ledger.deposit("A", "50") == Decimal("150.00")
        
        balances = self.ledger.transfer("A", "B", "150")
        
        assert balances == (Decimal("0.00"), Decimal("175.50"))
        assert self.ledger.get_balance("A") == Decimal("0.00")
        assert self.ledger.get_balance("B") == Decimal("175.50")
    
    def test_withdraw(self):
        """Test a successful withdrawal"""
        assert self.ledger.withdraw("A", Decimal("40.25")) == Decimal("59.75")
        
        history = self.ledger.history("A")
        assert len(history) == 1
        assert history[0].kind == TransactionKind.WITHDRAW
        assert history[0].amount == Decimal("40.25")
        assert history[0].balance_after == Decimal("59.75")
    
    def test_withdraw_entire_balance(self):
        """Test that the balance may reach exactly zero"""
        assert self.ledger.withdraw("A", "100.00") == Decimal("0.00")
        
        with pytest.raises(InsufficientFundsError):
            self.ledger.withdraw("A", "0.01")
    
    def test_deposit_has_no_upper_bound(self):
        assert self.ledger.deposit("B", "1000000000") == Decimal("1000000025.50")
    
    def test_amount_beyond_precision_rejected(self):
        """Test that amounts too large to hold to the cent are validation errors"""
        for amount in ["1e27", "9" * 27]:
            with pytest.raises(ValidationError):
                self.ledger.deposit("A", amount)
            with pytest.raises(ValidationError):
                self.ledger.withdraw("A", amount)
        
        assert self.ledger.get_balance("A") == Decimal("100.00")
        assert self.ledger.history("A") == []
    
    def test_balance_overflow_rejected(self):
        """Test that a credit pushing the balance past the precision changes nothing"""
        self.ledger.open_account("C", "0000", "9" * 26)
        
        with pytest.raises(ValidationError):
            self.ledger.deposit("C", "1")
        with pytest.raises(ValidationError):
            self.ledger.transfer("A", "C", "1")
        
        assert self.ledger.get_balance("C") == Decimal("9" * 26)
        assert self.ledger.get_balance("A") == Decimal("100.00")
        assert self.ledger.history("A") == []
        assert self.ledger.reconcile("A")
    
    def test_amounts_are_rounded_to_cents(self):
        """Test ROUND_HALF_UP to two decimal places"""
        assert self.ledger.deposit("A", "10.005") == Decimal("110.01")
        assert self.ledger.deposit("A", 0.1) == Decimal("110.11")
    
    def test_invalid_amounts_rejected(self):
        """Test that non-positive or non-numeric amounts are validation errors"""
        for amount in ["0", "-5", 0, -1, "abc", "", "NaN", "Infinity", "0.001", True]:
            with pytest.raises(ValidationError):
                self.ledger.withdraw("A", amount)
            with pytest.raises(ValidationError):
                self.ledger.deposit("A", amount)
            with pytest.raises(ValidationError):
                self.ledger.transfer("A", "B", amount)
        
        assert self.ledger.get_balance("A") == Decimal("100.00")
        assert self.ledger.history("A") == []
    
    def test_unknown_accounts(self):
        with pytest.raises(NotFoundError):
            self.ledger.withdraw("Z", "10")
        with pytest.raises(NotFoundError):
            self.ledger.deposit("Z", "10")
        with pytest.raises(NotFoundError):
            self.ledger.transfer("A", "Z", "10")
        with pytest.raises(NotFoundError):
            self.ledger.transfer("Z", "A", "10")
        with pytest.raises(NotFoundError):
            self.ledger.history("Z")
        
        assert self.ledger.get_balance("A") == Decimal("100.00")
    
    def test_transfer_insufficient_funds_changes_nothing(self):
        """Test that a failed debit leaves both accounts untouched"""
        with pytest.raises(InsufficientFundsError):
            self.ledger.transfer("B", "A", "30")
        
        assert self.ledger.get_balance("A") == Decimal("100.00")
        assert self.ledger.get_balance("B") == Decimal("25.50")
        assert self.ledger.history("A") == []
        assert self.ledger.history("B") == []
    
    def test_transfer_rolls_back_on_failure_mid_operation(self, monkeypatch):
        """Test that a failure between debit and credit is fully undone"""
        def broken_credit(*args, **kwargs):
            raise RuntimeError("credit failed")
        
        monkeypatch.setattr(self.ledger, "_credit", broken_credit)
        
        with pytest.raises(RuntimeError):
            self.ledger.transfer("A", "B", "60")
        
        assert self.ledger.get_balance("A") == Decimal("100.00")
        assert self.ledger.get_balance("B") == Decimal("25.50")
        assert self.ledger.history("A") == []
        assert self.ledger.history("B") == []
        assert self.ledger.reconcile("A")
    
    def test_transfer_to_same_account_rejected(self):
        with pytest.raises(ValidationError):
            self.ledger.transfer("A", "A", "10")
    
    def test_transfer_history(self):
        """Test paired transfer-out / transfer-in entries"""
        self.ledger.transfer("A", "B", "30")
        
        out = self.ledger.history("A")[-1]
        into = self.ledger.history("B")[-1]
        
        assert out.kind == TransactionKind.TRANSFER_OUT
        assert out.counterpart_account_id == "B"
        assert out.amount == Decimal("30.00")
        assert into.kind == TransactionKind.TRANSFER_IN
        assert into.counterpart_account_id == "A"
        assert into.balance_after == Decimal("55.50")
    
    def test_history_is_chronological(self):
        """Test that history is returned in append order"""
        self.ledger.deposit("A", "10")
        self.ledger.withdraw("A", "5")
        self.ledger.transfer("A", "B", "20")
        
        history = self.ledger.history("A")
        
        assert [t.kind for t in history] == [
            TransactionKind.DEPOSIT, TransactionKind.WITHDRAW, TransactionKind.TRANSFER_OUT
        ]
        timestamps = [t.timestamp for t in history]
        assert timestamps == sorted(timestamps)
    
    def test_history_is_a_copy(self):
        """Test that callers cannot alter the stored log"""
        self.ledger.deposit("A", "10")
        
        self.ledger.history("A").clear()
        
        assert len(self.ledger.history("A")) == 1
    
    def test_balances_reconcile_with_history(self):
        """Test balance == opening balance + signed history after many operations"""
        self.ledger.deposit("A", "12.34")
        self.ledger.withdraw("A", "2.34")
        self.ledger.transfer("A", "B", "50")
        self.ledger.transfer("B", "A", "70.25")
        with pytest.raises(InsufficientFundsError):
            self.ledger.withdraw("B", "1000")
        
        assert self.ledger.reconcile("A")
        assert self.ledger.reconcile("B")
        assert self.ledger.get_balance("A") + self.ledger.get_balance("B") == Decimal("135.50")


class TestAccountSetup:
    """Test account opening and ATM login"""
    
    def setup_method(self):
        self.ledger = AccountLedger()
    
    def test_open_account(self):
        account = self.ledger.open_account("A", "1234", "99.999")
        
        assert account.balance == Decimal("100.00")
        assert account.opening_balance == Decimal("100.00")
        assert self.ledger.list_account_ids() == ["A"]
    
    def test_open_account_validation(self):
        with pytest.raises(ValidationError):
            self.ledger.open_account("", "1234")
        with pytest.raises(ValidationError):
            self.ledger.open_account("A", "")
        with pytest.raises(ValidationError):
            self.ledger.open_account("A", "1234", "-1")
        
        self.ledger.open_account("A", "1234")
        with pytest.raises(AlreadyExistsError):
            self.ledger.open_account("A", "0000")
    
    def test_atm_login(self):
        """Test PIN check with a generic failure message"""
        self.ledger.open_account("A", "1234", "10")
        
        identity = self.ledger.authenticate("A", "1234")
        assert identity.subject == "A"
        assert identity.kind == IdentityKind.ACCOUNT
        
        with pytest.raises(AuthenticationError) as wrong_pin:
            self.ledger.authenticate("A", "0000")
        with pytest.raises(AuthenticationError) as unknown:
            self.ledger.authenticate("Z", "1234")
        assert str(wrong_pin.value) == str(unknown.value)
