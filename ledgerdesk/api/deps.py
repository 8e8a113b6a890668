"""
Request dependencies: services lookup and session identities
"""

from typing import Optional

from fastapi import Depends, Header, Request

from ..credentials import Identity, IdentityKind
from ..errors import AuthenticationError
from ..services import LedgerDeskServices


SESSION_HEADER = "X-Session-Token"


def get_services(request: Request) -> LedgerDeskServices:
    return request.app.state.services


def session_token(token: Optional[str] = Header(None, alias=SESSION_HEADER)) -> Optional[str]:
    return token


def _identity_of_kind(services: LedgerDeskServices, token: Optional[str],
                      kind: IdentityKind) -> Identity:
    identity = services.sessions.resolve(token)
    if identity.kind != kind:
        raise AuthenticationError("Not logged in.")
    return identity


def current_user(
    token: Optional[str] = Depends(session_token),
    services: LedgerDeskServices = Depends(get_services)
) -> Identity:
    """Identity of a reservation-desk session"""
    return _identity_of_kind(services, token, IdentityKind.USER)


def current_account(
    token: Optional[str] = Depends(session_token),
    services: LedgerDeskServices = Depends(get_services)
) -> Identity:
    """Identity of an ATM session"""
    return _identity_of_kind(services, token, IdentityKind.ACCOUNT)
