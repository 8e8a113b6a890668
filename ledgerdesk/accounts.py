"""
Account Ledger Module

In-memory ATM accounts with balances and append-only transaction history.
Balances never go negative, every balance change is recorded as a
transaction, and transfers are applied as an all-or-nothing debit/credit pair.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple
import hmac
import threading

from .amounts import (
    AmountLike, ZERO, add_amounts, format_amount, to_decimal, validate_amount
)
from .credentials import Identity, IdentityKind
from .errors import (
    AlreadyExistsError, AuthenticationError, InsufficientFundsError,
    NotFoundError, ValidationError
)
from .logging_config import get_logger, log_action


class TransactionKind(Enum):
    """Kinds of ATM transactions"""
    WITHDRAW = "withdraw"
    DEPOSIT = "deposit"
    TRANSFER_IN = "transfer-in"
    TRANSFER_OUT = "transfer-out"

    @property
    def is_debit(self) -> bool:
        return self in (TransactionKind.WITHDRAW, TransactionKind.TRANSFER_OUT)


@dataclass(frozen=True)
class AccountTransaction:
    """Immutable history entry"""
    timestamp: datetime
    kind: TransactionKind
    amount: Decimal
    balance_after: Decimal
    counterpart_account_id: Optional[str] = None

    @property
    def signed_amount(self) -> Decimal:
        return -self.amount if self.kind.is_debit else self.amount

    def describe(self) -> str:
        text = f"{self.timestamp.isoformat()} {self.kind.value} {format_amount(self.amount)}"
        if self.counterpart_account_id:
            direction = "to" if self.kind == TransactionKind.TRANSFER_OUT else "from"
            text += f" {direction} {self.counterpart_account_id}"
        return text


@dataclass
class Account:
    """
    ATM account. Balance is kept consistent with the transaction log.
    """
    account_id: str
    pin: str
    balance: Decimal = ZERO
    opening_balance: Decimal = ZERO
    transactions: List[AccountTransaction] = field(default_factory=list)

    def can_debit(self, amount: Decimal) -> bool:
        return amount <= self.balance

    def reconcile(self) -> bool:
        """Check balance == opening balance + signed sum of the log"""
        total = self.opening_balance + sum(
            (t.signed_amount for t in self.transactions), ZERO
        )
        return total == self.balance


class AccountLedger:
    """
    In-memory account id -> account mapping with ATM operations

    Every mutation holds the ledger lock, so a debit/credit pair can never
    interleave with another operation.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = get_logger("ledgerdesk.accounts")
        self._accounts: Dict[str, Account] = {}
        self._lock = threading.RLock()

    def open_account(self, account_id: str, pin: str,
                     opening_balance: AmountLike = ZERO) -> Account:
        """
        Open an account

        Raises:
            ValidationError: If id or pin is empty or the opening balance is negative
            AlreadyExistsError: If the account id is taken
        """
        account_id = (account_id or "").strip()
        pin = (pin or "").strip()
        if not account_id:
            raise ValidationError("Account id cannot be empty")
        if not pin:
            raise ValidationError("PIN cannot be empty")

        balance = to_decimal(opening_balance)
        if balance < ZERO:
            raise ValidationError("Opening balance cannot be negative")

        with self._lock:
            if account_id in self._accounts:
                raise AlreadyExistsError(f"Account {account_id} already exists")
            account = Account(
                account_id=account_id,
                pin=pin,
                balance=balance,
                opening_balance=balance
            )
            self._accounts[account_id] = account

        log_action(
            self.logger, "info", "Account opened",
            user_id=account_id, action="open_account",
            resource=f"account:{account_id}",
            extra={"opening_balance": str(balance)}
        )
        return account

    def authenticate(self, account_id: str, pin: str) -> Identity:
        """
        ATM login

        Raises:
            AuthenticationError: For every failure, with the same message
        """
        account = self._accounts.get((account_id or "").strip())
        supplied = (pin or "").strip()
        if account is None or not hmac.compare_digest(account.pin.encode("utf-8"), supplied.encode("utf-8")):
            log_action(
                self.logger, "warning", "ATM login failed",
                user_id=account_id or None, action="atm_login_failed"
            )
            raise AuthenticationError()
        return Identity(subject=account.account_id, kind=IdentityKind.ACCOUNT)

    def get_account(self, account_id: str) -> Account:
        """
        Raises:
            NotFoundError: If the account does not exist
        """
        account = self._accounts.get(account_id)
        if account is None:
            raise NotFoundError(f"Account {account_id} not found")
        return account

    def get_balance(self, account_id: str) -> Decimal:
        return self.get_account(account_id).balance

    def withdraw(self, account_id: str, amount: AmountLike) -> Decimal:
        """
        Withdraw from an account

        Returns:
            New balance

        Raises:
            ValidationError: If the amount is not positive
            NotFoundError: If the account does not exist
            InsufficientFundsError: If amount exceeds the balance
        """
        value = validate_amount(amount)
        with self._lock:
            account = self.get_account(account_id)
            with self._atomic(account):
                self._debit(account, value, TransactionKind.WITHDRAW)
            balance = account.balance

        log_action(
            self.logger, "info", "Withdrawal completed",
            user_id=account_id, action="withdraw", resource=f"account:{account_id}",
            extra={"amount": str(value), "balance": str(balance)}
        )
        return balance

    def deposit(self, account_id: str, amount: AmountLike) -> Decimal:
        """
        Deposit into an account. No upper bound.

        Returns:
            New balance
        """
        value = validate_amount(amount)
        with self._lock:
            account = self.get_account(account_id)
            with self._atomic(account):
                self._credit(account, value, TransactionKind.DEPOSIT)
            balance = account.balance

        log_action(
            self.logger, "info", "Deposit completed",
            user_id=account_id, action="deposit", resource=f"account:{account_id}",
            extra={"amount": str(value), "balance": str(balance)}
        )
        return balance

    def transfer(self, from_account_id: str, to_account_id: str,
                 amount: AmountLike) -> Tuple[Decimal, Decimal]:
        """
        Transfer between two accounts as one atomic debit/credit pair

        Returns:
            (source balance, destination balance) after the transfer

        Raises:
            ValidationError: If the amount is not positive or both ids are the same
            NotFoundError: If either account does not exist
            InsufficientFundsError: If amount exceeds the source balance
        """
        value = validate_amount(amount)
        if from_account_id == to_account_id:
            raise ValidationError("Cannot transfer to the same account")

        with self._lock:
            source = self.get_account(from_account_id)
            destination = self.get_account(to_account_id)
            with self._atomic(source, destination):
                self._debit(source, value, TransactionKind.TRANSFER_OUT, destination.account_id)
                self._credit(destination, value, TransactionKind.TRANSFER_IN, source.account_id)
            balances = (source.balance, destination.balance)

        log_action(
            self.logger, "info", "Transfer completed",
            user_id=from_account_id, action="transfer",
            resource=f"account:{from_account_id}",
            extra={"amount": str(value), "to_account": to_account_id}
        )
        return balances

    def history(self, account_id: str) -> List[AccountTransaction]:
        """Full transaction log in chronological order"""
        return list(self.get_account(account_id).transactions)

    def reconcile(self, account_id: str) -> bool:
        return self.get_account(account_id).reconcile()

    def list_account_ids(self) -> List[str]:
        return list(self._accounts)

    @contextmanager
    def _atomic(self, *accounts: Account):
        """Restore balances and logs of the given accounts if the block raises"""
        snapshot = [(a, a.balance, len(a.transactions)) for a in accounts]
        try:
            yield
        except Exception:
            for account, balance, log_length in snapshot:
                account.balance = balance
                del account.transactions[log_length:]
            raise

    def _debit(self, account: Account, amount: Decimal, kind: TransactionKind,
               counterpart: Optional[str] = None) -> None:
        if not account.can_debit(amount):
            log_action(
                self.logger, "warning", "Insufficient funds",
                user_id=account.account_id, action=f"{kind.value}_rejected",
                resource=f"account:{account.account_id}",
                extra={"amount": str(amount)}
            )
            raise InsufficientFundsError(
                f"Insufficient funds: available {format_amount(account.balance)}, "
                f"requested {format_amount(amount)}"
            )
        account.balance -= amount
        self._record(account, kind, amount, counterpart)

    def _credit(self, account: Account, amount: Decimal, kind: TransactionKind,
                counterpart: Optional[str] = None) -> None:
        account.balance = add_amounts(account.balance, amount)
        self._record(account, kind, amount, counterpart)

    def _record(self, account: Account, kind: TransactionKind, amount: Decimal,
                counterpart: Optional[str]) -> None:
        account.transactions.append(AccountTransaction(
            timestamp=self.clock(),
            kind=kind,
            amount=amount,
            balance_after=account.balance,
            counterpart_account_id=counterpart
        ))
