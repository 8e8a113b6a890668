"""
ATM endpoints
"""

from typing import Optional

from fastapi import APIRouter, Depends

from .deps import current_account, get_services, session_token
from .schemas import (
    AmountRequest, AtmLoginRequest, BalanceResponse, HistoryResponse,
    SessionResponse, TransactionModel, TransferRequest
)
from ..credentials import Identity
from ..services import LedgerDeskServices


router = APIRouter()


@router.post("/login", response_model=SessionResponse)
async def atm_login(
    request: AtmLoginRequest,
    services: LedgerDeskServices = Depends(get_services)
):
    """Authenticate with account id and PIN"""
    identity = services.account_ledger.authenticate(request.account_id, request.pin)
    session = services.sessions.open(identity)
    return SessionResponse(
        token=session.token,
        subject=identity.subject,
        expires_at=session.expires_at
    )


@router.post("/logout")
async def atm_logout(
    token: Optional[str] = Depends(session_token),
    services: LedgerDeskServices = Depends(get_services)
):
    """End the ATM session"""
    return {"logged_out": services.sessions.close(token)}


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    identity: Identity = Depends(current_account),
    services: LedgerDeskServices = Depends(get_services)
):
    balance = services.account_ledger.get_balance(identity.subject)
    return BalanceResponse(account_id=identity.subject, balance=str(balance))


@router.get("/history", response_model=HistoryResponse)
async def get_history(
    identity: Identity = Depends(current_account),
    services: LedgerDeskServices = Depends(get_services)
):
    """Transaction history, oldest first"""
    transactions = services.account_ledger.history(identity.subject)
    return HistoryResponse(
        account_id=identity.subject,
        transactions=[TransactionModel.from_transaction(t) for t in transactions]
    )


@router.post("/withdraw", response_model=BalanceResponse)
async def withdraw(
    request: AmountRequest,
    identity: Identity = Depends(current_account),
    services: LedgerDeskServices = Depends(get_services)
):
    balance = services.account_ledger.withdraw(identity.subject, request.amount)
    return BalanceResponse(account_id=identity.subject, balance=str(balance))


@router.post("/deposit", response_model=BalanceResponse)
async def deposit(
    request: AmountRequest,
    identity: Identity = Depends(current_account),
    services: LedgerDeskServices = Depends(get_services)
):
    balance = services.account_ledger.deposit(identity.subject, request.amount)
    return BalanceResponse(account_id=identity.subject, balance=str(balance))


@router.post("/transfer", response_model=BalanceResponse)
async def transfer(
    request: TransferRequest,
    identity: Identity = Depends(current_account),
    services: LedgerDeskServices = Depends(get_services)
):
    """Transfer to another account; returns the source balance"""
    balance, _ = services.account_ledger.transfer(
        identity.subject, request.to_account_id, request.amount
    )
    return BalanceResponse(account_id=identity.subject, balance=str(balance))
