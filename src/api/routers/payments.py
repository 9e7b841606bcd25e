from fastapi import APIRouter, Depends, Request, status

from src.api import schemas
from src.api.dependencies import get_payment_service, get_transaction_service
from src.api.limiter import client_address
from src.portal_app.services.payment_service import PaymentIntakeService
from src.portal_app.services.transaction_service import TransactionQueryService

router = APIRouter()


@router.post(
    "/payment",
    response_model=schemas.PaymentAccepted,
    status_code=status.HTTP_201_CREATED,
)
def submit_payment(
    request: Request,
    payload: schemas.PaymentRequest,
    service: PaymentIntakeService = Depends(get_payment_service),
):
    """Validate and record a payment submission."""
    payment = service.submit(
        username=payload.username,
        full_name=payload.full_name,
        instrument_number=payload.card_number,
        expiry=payload.expiry,
        code=payload.cvv,
        amount=payload.amount,
        source_address=client_address(request),
    )
    return {"message": "Payment initiated successfully", "payment": payment}


@router.get("/transactions/{username}", response_model=schemas.TransactionList)
def list_transactions(
    username: str,
    service: TransactionQueryService = Depends(get_transaction_service),
):
    """Payment history for a user, newest first."""
    return {"transactions": service.list_for_user(username)}
