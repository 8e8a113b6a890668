"""
Reservation Ledger Module

Append-only store of train reservations keyed by a generated PNR. Records
are scanned linearly from a delimited flat file; cancellation rewrites the
whole file without the cancelled record, atomically, and only for the
reservation's owner after an explicit confirmation.
"""

from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import Callable, List, Optional, Tuple
import random
import threading

from .errors import ForbiddenError, NotFoundError, ValidationError
from .identifiers import generate_pnr
from .logging_config import get_logger, log_action
from .storage import RecordStorage, Row, check_field_lengths
from .trains import TrainDirectory


RESERVATION_HEADER = [
    "PNR", "Username", "Name", "Age", "Gender", "TrainNo",
    "TrainName", "Class", "Date", "From", "To"
]

DATE_FORMAT = "%Y-%m-%d"


def parse_journey_date(text: str, today: date) -> date:
    """
    Parse a YYYY-MM-DD journey date strictly

    Anything unparsable falls back to today rather than rejecting the input.
    """
    try:
        value = (text or "").strip()
        parsed = datetime.strptime(value, DATE_FORMAT).date()
        # strptime accepts single-digit months and days
        if parsed.strftime(DATE_FORMAT) != value:
            return today
        return parsed
    except ValueError:
        return today


def parse_age(text) -> int:
    """Parse a passenger age, falling back to 0 for invalid input"""
    try:
        age = int(str(text).strip())
    except (TypeError, ValueError):
        return 0
    return age if age >= 0 else 0


class CancellationStatus(Enum):
    """Outcome of an owner's cancellation request"""
    CANCELLED = "cancelled"
    ABORTED = "aborted"  # Owner declined the confirmation


@dataclass(frozen=True)
class Reservation:
    """
    Train reservation. The PNR is assigned by the ledger on append.
    """
    owner: str
    passenger_name: str
    age: int
    gender: str
    train_no: str
    train_name: str
    class_type: str
    journey_date: date
    origin: str
    destination: str
    pnr: str = ""

    def __post_init__(self):
        if not self.owner:
            raise ValidationError("Reservation must have an owner")
        if not isinstance(self.age, int) or self.age < 0:
            raise ValidationError("Age must be a non-negative integer")
        check_field_lengths(self.to_row())

    def to_row(self) -> Row:
        """Serialize in header order"""
        return [
            self.pnr,
            self.owner,
            self.passenger_name,
            str(self.age),
            self.gender,
            self.train_no,
            self.train_name,
            self.class_type,
            self.journey_date.strftime(DATE_FORMAT),
            self.origin,
            self.destination,
        ]

    @classmethod
    def from_row(cls, row: Row) -> 'Reservation':
        """
        Parse a stored row

        Raises:
            ValueError: If the row does not hold a valid reservation
        """
        if len(row) != len(RESERVATION_HEADER):
            raise ValueError(f"Expected {len(RESERVATION_HEADER)} fields, got {len(row)}")
        (pnr, owner, name, age, gender, train_no,
         train_name, class_type, journey_date, origin, destination) = row
        return cls(
            pnr=pnr,
            owner=owner,
            passenger_name=name,
            age=int(age),
            gender=gender,
            train_no=train_no,
            train_name=train_name,
            class_type=class_type,
            journey_date=datetime.strptime(journey_date, DATE_FORMAT).date(),
            origin=origin,
            destination=destination,
        )

    def describe(self) -> str:
        """One-line summary for display"""
        return (
            f"PNR: {self.pnr} | "
            f"Passenger: {self.passenger_name} (Age: {self.age}, {self.gender}) | "
            f"Train: {self.train_no} - {self.train_name} | "
            f"Class: {self.class_type} | "
            f"Date: {self.journey_date.strftime(DATE_FORMAT)} | "
            f"From: {self.origin} -> To: {self.destination}"
        )


class ReservationLedger:
    """
    Reservation store over a header-prefixed CSV file

    Mutations (append, cancel) are serialized; reads scan the file each time
    so the file stays the single source of truth.
    """

    def __init__(
        self,
        storage: RecordStorage,
        train_directory: Optional[TrainDirectory] = None,
        clock: Optional[Callable[[], datetime]] = None,
        rng: Optional[random.Random] = None,
        pnr_random_min: int = 100,
        pnr_random_max: int = 999
    ):
        if storage.header != RESERVATION_HEADER:
            raise ValueError("Reservation storage must use the reservation header")
        self.storage = storage
        self.train_directory = train_directory or TrainDirectory()
        self.clock = clock or datetime.now
        self.rng = rng or random.Random()
        self.pnr_random_min = pnr_random_min
        self.pnr_random_max = pnr_random_max
        self.logger = get_logger("ledgerdesk.reservations")
        self._lock = threading.RLock()

    def initialize(self) -> bool:
        """Create the reservation file (header only) if absent"""
        created = self.storage.initialize()
        if created:
            log_action(
                self.logger, "info", "Created reservation data file",
                action="initialize_reservations"
            )
        return created

    def append(self, record: Reservation) -> str:
        """
        Assign a PNR to a caller-built record and persist it

        Returns:
            The assigned PNR
        """
        with self._lock:
            pnr = generate_pnr(
                self.clock(), self.rng, self.pnr_random_min, self.pnr_random_max
            )
            stored = replace(record, pnr=pnr)
            self.storage.append_row(stored.to_row())

        log_action(
            self.logger, "info", "Reservation created",
            user_id=stored.owner, action="create_reservation",
            resource=f"reservation:{pnr}",
            extra={
                "train_no": stored.train_no,
                "journey_date": stored.journey_date.isoformat(),
                "from": stored.origin,
                "to": stored.destination
            }
        )
        return pnr

    def make_reservation(
        self,
        owner: str,
        passenger_name: str,
        age,
        gender: str,
        train_no: str,
        class_type: str,
        journey_date: str,
        origin: str,
        destination: str
    ) -> Reservation:
        """
        Build and append a reservation from raw user input

        Invalid ages become 0, unparsable dates become today and the train
        name comes from the train directory.

        Returns:
            The stored Reservation, PNR included
        """
        train_no = (train_no or "").strip()
        record = Reservation(
            owner=owner,
            passenger_name=(passenger_name or "").strip(),
            age=parse_age(age),
            gender=(gender or "").strip(),
            train_no=train_no,
            train_name=self.train_directory.name_for(train_no),
            class_type=(class_type or "").strip(),
            journey_date=parse_journey_date(journey_date, self.clock().date()),
            origin=(origin or "").strip(),
            destination=(destination or "").strip(),
        )
        pnr = self.append(record)
        return replace(record, pnr=pnr)

    def all_reservations(self) -> List[Reservation]:
        """All active reservations in append order"""
        return [reservation for _, reservation in self._scan()]

    def find_by_pnr(self, pnr: str) -> Reservation:
        """
        Find a reservation by exact PNR

        Raises:
            NotFoundError: If no active reservation has this PNR
        """
        pnr = (pnr or "").strip()
        for _, reservation in self._scan():
            if reservation.pnr == pnr:
                return reservation
        raise NotFoundError("PNR not found.")

    def list_by_owner(self, owner: str) -> List[Reservation]:
        """Reservations made by owner, in append order"""
        return [r for _, r in self._scan() if r.owner == owner]

    def cancel(
        self,
        pnr: str,
        requester: str,
        confirm: Callable[[Reservation], bool]
    ) -> CancellationStatus:
        """
        Cancel a reservation on behalf of its owner

        Args:
            pnr: PNR to cancel
            requester: Authenticated username asking for the cancellation
            confirm: Called with the reservation; removal happens only if it returns True

        Returns:
            CANCELLED if removed, ABORTED if confirmation was declined

        Raises:
            ValidationError: If the PNR is empty
            NotFoundError: If no active reservation has this PNR
            ForbiddenError: If the reservation belongs to someone else
            StorageError: If the rewrite failed (the store is left unchanged)
        """
        pnr = (pnr or "").strip()
        if not pnr:
            raise ValidationError("PNR cannot be empty")

        with self._lock, self.storage.locked():
            rows = self.storage.read_rows()
            match: Optional[Tuple[int, Reservation]] = None
            for index, reservation in self._parse(rows):
                if reservation.pnr == pnr:
                    match = (index, reservation)
                    break

            if match is None:
                raise NotFoundError("PNR not found.")

            index, reservation = match
            if reservation.owner != requester:
                log_action(
                    self.logger, "warning", "Cancellation refused: not the owner",
                    user_id=requester, action="cancel_forbidden",
                    resource=f"reservation:{pnr}"
                )
                raise ForbiddenError("You can only cancel your own reservations.")

            if not confirm(reservation):
                log_action(
                    self.logger, "info", "Cancellation aborted",
                    user_id=requester, action="cancel_aborted",
                    resource=f"reservation:{pnr}"
                )
                return CancellationStatus.ABORTED

            remaining = rows[:index] + rows[index + 1:]
            self.storage.replace_rows(remaining)

        log_action(
            self.logger, "info", "Reservation cancelled",
            user_id=requester, action="cancel_reservation",
            resource=f"reservation:{pnr}"
        )
        return CancellationStatus.CANCELLED

    def _scan(self) -> List[Tuple[int, Reservation]]:
        return self._parse(self.storage.read_rows())

    def _parse(self, rows: List[Row]) -> List[Tuple[int, Reservation]]:
        """Parse rows, keeping each record's position and skipping malformed rows"""
        parsed = []
        for index, row in enumerate(rows):
            try:
                parsed.append((index, Reservation.from_row(row)))
            except ValueError as e:
                self.logger.warning(f"Skipping malformed reservation row {index + 1}: {e}")
        return parsed
