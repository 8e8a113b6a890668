"""
Registration, login and logout endpoints for the reservation desk
"""

from typing import Optional

from fastapi import APIRouter, Depends, status

from .deps import get_services, session_token
from .schemas import CredentialsRequest, SessionResponse
from ..services import LedgerDeskServices


router = APIRouter()


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request: CredentialsRequest,
    services: LedgerDeskServices = Depends(get_services)
):
    """Create a new user"""
    credential = services.credential_store.register(request.username, request.password)
    return {
        "username": credential.username,
        "message": "Registration successful. You may login now."
    }


@router.post("/login", response_model=SessionResponse)
async def login(
    request: CredentialsRequest,
    services: LedgerDeskServices = Depends(get_services)
):
    """Authenticate and open a session"""
    identity = services.credential_store.authenticate(request.username, request.password)
    session = services.sessions.open(identity)
    return SessionResponse(
        token=session.token,
        subject=identity.subject,
        expires_at=session.expires_at
    )


@router.post("/logout")
async def logout(
    token: Optional[str] = Depends(session_token),
    services: LedgerDeskServices = Depends(get_services)
):
    """End the current session"""
    return {"logged_out": services.sessions.close(token)}
