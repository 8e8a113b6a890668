"""
Pydantic schemas for API requests and responses
"""

from datetime import datetime
from typing import List, Optional, Union
from pydantic import BaseModel, Field

from ..accounts import AccountTransaction
from ..reservations import Reservation


# Auth schemas
class CredentialsRequest(BaseModel):
    username: str
    password: str


class AtmLoginRequest(BaseModel):
    account_id: str
    pin: str


class SessionResponse(BaseModel):
    token: str
    subject: str
    expires_at: datetime


# Reservation schemas
class ReservationRequest(BaseModel):
    passenger_name: str
    age: Union[int, str] = Field(0, description="Invalid ages are stored as 0")
    gender: str = ""
    train_no: str
    class_type: str = ""
    journey_date: str = Field("", description="YYYY-MM-DD; invalid dates become today")
    origin: str
    destination: str


class ReservationModel(BaseModel):
    pnr: str
    owner: str
    passenger_name: str
    age: int
    gender: str
    train_no: str
    train_name: str
    class_type: str
    journey_date: str
    origin: str
    destination: str
    summary: str
    
    @classmethod
    def from_reservation(cls, reservation: Reservation) -> 'ReservationModel':
        return cls(
            pnr=reservation.pnr,
            owner=reservation.owner,
            passenger_name=reservation.passenger_name,
            age=reservation.age,
            gender=reservation.gender,
            train_no=reservation.train_no,
            train_name=reservation.train_name,
            class_type=reservation.class_type,
            journey_date=reservation.journey_date.isoformat(),
            origin=reservation.origin,
            destination=reservation.destination,
            summary=reservation.describe()
        )


class TrainModel(BaseModel):
    train_no: str
    train_name: str


# ATM schemas
class AmountRequest(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")


class TransferRequest(BaseModel):
    to_account_id: str
    amount: str = Field(..., description="Decimal amount as string")


class BalanceResponse(BaseModel):
    account_id: str
    balance: str


class TransactionModel(BaseModel):
    timestamp: datetime
    kind: str
    amount: str
    balance_after: str
    counterpart_account_id: Optional[str] = None
    
    @classmethod
    def from_transaction(cls, transaction: AccountTransaction) -> 'TransactionModel':
        return cls(
            timestamp=transaction.timestamp,
            kind=transaction.kind.value,
            amount=str(transaction.amount),
            balance_after=str(transaction.balance_after),
            counterpart_account_id=transaction.counterpart_account_id
        )


class HistoryResponse(BaseModel):
    account_id: str
    transactions: List[TransactionModel]
