import logging

from fastapi import APIRouter, Depends, status

from study_helper.api.routes.users import serialize_account
from study_helper.core.errors import Unauthenticated, ValidationError
from study_helper.core.throttle import throttle
from study_helper.dependencies.services import get_credential_store, get_token_service, get_usage_tracker
from study_helper.schemas.auth import UserCreate, UserLogin
from study_helper.services.credential_store import CredentialStore
from study_helper.services.usage_tracker import UsageQuotaTracker
from study_helper.utils.auth import TokenService

logger = logging.getLogger(__name__)

router = APIRouter()

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


@router.post("/register", status_code=status.HTTP_201_CREATED, dependencies=[Depends(throttle("auth"))])
def register(
    user_data: UserCreate,
    store: CredentialStore = Depends(get_credential_store),
    tokens: TokenService = Depends(get_token_service),
    tracker: UsageQuotaTracker = Depends(get_usage_tracker),
):
    """
    Register a new account and log it in.
    Returns 400 for invalid input or an email that is already registered.
    """
    account = store.create(user_data.email, user_data.password)
    token = tokens.issue(account.id)
    return {
        "success": True,
        "message": "User registered successfully",
        "token": token,
        "account": serialize_account(account, tracker),
    }


@router.post("/login", dependencies=[Depends(throttle("auth"))])
def login(
    credentials: UserLogin,
    store: CredentialStore = Depends(get_credential_store),
    tokens: TokenService = Depends(get_token_service),
    tracker: UsageQuotaTracker = Depends(get_usage_tracker),
):
    """
    Exchange email and password for a bearer token.
    Unknown email and wrong password get the same 401 to prevent email enumeration.
    """
    if not credentials.email or not credentials.password:
        raise ValidationError("Please provide email and password")

    account = store.find_by_email(credentials.email)
    if not account or not store.verify_password(account, credentials.password):
        logger.warning("[AUTH] Failed login attempt")
        raise Unauthenticated(INVALID_CREDENTIALS_MESSAGE)

    token = tokens.issue(account.id)
    return {
        "success": True,
        "message": "Login successful",
        "token": token,
        "account": serialize_account(account, tracker),
    }
