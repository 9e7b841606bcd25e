from fastapi import APIRouter, Depends, Request, status

from src import config
from src.api import schemas
from src.api.dependencies import get_auth_engine
from src.api.limiter import client_address, exempt_when_testing, limiter
from src.portal_app.services.account_service import AuthenticationEngine

router = APIRouter()


@router.post(
    "/register",
    response_model=schemas.TokenResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(config.REGISTER_RATE_LIMIT, exempt_when=exempt_when_testing)
def register(
    request: Request,
    payload: schemas.RegisterRequest,
    engine: AuthenticationEngine = Depends(get_auth_engine),
):
    """
    Register a new customer account.

    Rate limited per IP to prevent spam (disabled when TESTING=1).
    """
    grant = engine.register(
        username=payload.username,
        password=payload.password,
        email=payload.email,
        source_address=client_address(request),
    )
    return {"message": "User registered successfully", "token": grant.token}


@router.post("/login", response_model=schemas.TokenResponse)
def login(
    request: Request,
    payload: schemas.LoginRequest,
    engine: AuthenticationEngine = Depends(get_auth_engine),
):
    """
    Authenticate and return a signed session token.

    Throttled per source address and protected by account lockout after
    5 failed attempts.
    """
    grant = engine.login(
        username=payload.username,
        password=payload.password,
        source_address=client_address(request),
    )
    return {"message": "Login successful", "token": grant.token}
