from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# --- Account Schemas ---
class RegisterRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None
    email: Optional[str] = None


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class TokenResponse(BaseModel):
    message: str
    token: str


# --- Payment Schemas ---
class PaymentRequest(BaseModel):
    username: Optional[str] = None
    full_name: Optional[str] = Field(None, alias="fullName")
    card_number: Optional[Union[str, int]] = Field(None, alias="cardNumber")
    expiry: Optional[str] = None
    cvv: Optional[Union[str, int]] = None
    amount: Optional[Union[str, int, float]] = None

    model_config = ConfigDict(populate_by_name=True)


class PaymentResponse(BaseModel):
    id: int
    username: str
    full_name: str
    instrument_reference: str
    expiry: str
    amount: Decimal
    status: str
    payment_date: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentAccepted(BaseModel):
    message: str
    payment: PaymentResponse


class TransactionList(BaseModel):
    transactions: List[PaymentResponse]


# --- Service Schemas ---
class HealthResponse(BaseModel):
    status: str
    storeStatus: str


class WebhookAck(BaseModel):
    received: bool
