"""
Reservation endpoints
"""

from typing import List

from fastapi import APIRouter, Depends, status

from .deps import current_user, get_services
from .schemas import ReservationModel, ReservationRequest, TrainModel
from ..credentials import Identity
from ..errors import ForbiddenError
from ..services import LedgerDeskServices


router = APIRouter()
trains_router = APIRouter()


@trains_router.get("", response_model=List[TrainModel])
async def list_trains(services: LedgerDeskServices = Depends(get_services)):
    """Available trains"""
    return [
        TrainModel(train_no=train_no, train_name=train_name)
        for train_no, train_name in services.train_directory.list_trains()
    ]


@router.post("", response_model=ReservationModel, status_code=status.HTTP_201_CREATED)
async def make_reservation(
    request: ReservationRequest,
    identity: Identity = Depends(current_user),
    services: LedgerDeskServices = Depends(get_services)
):
    """Book a reservation for the logged-in user"""
    reservation = services.reservation_ledger.make_reservation(
        owner=identity.subject,
        passenger_name=request.passenger_name,
        age=request.age,
        gender=request.gender,
        train_no=request.train_no,
        class_type=request.class_type,
        journey_date=request.journey_date,
        origin=request.origin,
        destination=request.destination
    )
    return ReservationModel.from_reservation(reservation)


@router.get("", response_model=List[ReservationModel])
async def list_my_reservations(
    identity: Identity = Depends(current_user),
    services: LedgerDeskServices = Depends(get_services)
):
    """Reservations owned by the logged-in user, oldest first"""
    reservations = services.reservation_ledger.list_by_owner(identity.subject)
    return [ReservationModel.from_reservation(r) for r in reservations]


@router.get("/{pnr}", response_model=ReservationModel)
async def get_reservation(
    pnr: str,
    identity: Identity = Depends(current_user),
    services: LedgerDeskServices = Depends(get_services)
):
    """Look up one of the user's reservations by PNR"""
    reservation = services.reservation_ledger.find_by_pnr(pnr)
    if reservation.owner != identity.subject:
        raise ForbiddenError("You can only view your own reservations.")
    return ReservationModel.from_reservation(reservation)


@router.delete("/{pnr}")
async def cancel_reservation(
    pnr: str,
    confirm: bool = False,
    identity: Identity = Depends(current_user),
    services: LedgerDeskServices = Depends(get_services)
):
    """Cancel a reservation; nothing is removed unless confirm=true"""
    outcome = services.reservation_ledger.cancel(
        pnr, identity.subject, confirm=lambda reservation: confirm
    )
    return {"pnr": pnr, "status": outcome.value}
