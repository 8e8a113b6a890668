"""
Service Wiring Module

Builds every store once at startup and hands them out by reference. Nothing
here is a module-level singleton; the API keeps its instance on app.state.
"""

from typing import Optional

from .accounts import AccountLedger
from .config import LedgerDeskConfig, get_config
from .credentials import CredentialStore
from .logging_config import get_logger, log_action
from .reservations import RESERVATION_HEADER, ReservationLedger
from .sessions import SessionRegistry
from .storage import CsvFileStorage, InMemoryRecordStorage
from .trains import TrainDirectory


class LedgerDeskServices:
    """Credential store, reservation ledger and account ledger, initialized"""

    def __init__(self, config: Optional[LedgerDeskConfig] = None, in_memory: bool = False):
        self.config = config or get_config()
        self.logger = get_logger("ledgerdesk.services")

        # Initialize storage
        if in_memory:
            users_storage = InMemoryRecordStorage()
            reservations_storage = InMemoryRecordStorage(header=RESERVATION_HEADER)
        else:
            users_storage = CsvFileStorage(self.config.users_path)
            reservations_storage = CsvFileStorage(
                self.config.reservations_path, header=RESERVATION_HEADER
            )

        # Initialize core components
        self.train_directory = TrainDirectory()
        self.credential_store = CredentialStore(
            users_storage,
            default_credential=(self.config.default_username, self.config.default_secret)
        )
        self.reservation_ledger = ReservationLedger(
            reservations_storage,
            train_directory=self.train_directory,
            pnr_random_min=self.config.pnr_random_min,
            pnr_random_max=self.config.pnr_random_max
        )
        self.account_ledger = AccountLedger()
        self.sessions = SessionRegistry(timeout_minutes=self.config.session_timeout_minutes)

        self._startup()

    def _startup(self) -> None:
        """Create missing data files, load credentials and seed ATM accounts"""
        self.credential_store.initialize()
        self.reservation_ledger.initialize()
        loaded = self.credential_store.load()

        for seed in self.config.atm_accounts:
            self.account_ledger.open_account(seed.account_id, seed.pin, seed.balance)

        log_action(
            self.logger, "info", "LedgerDesk services started",
            action="startup",
            extra={
                "credentials": loaded,
                "atm_accounts": len(self.config.atm_accounts)
            }
        )
