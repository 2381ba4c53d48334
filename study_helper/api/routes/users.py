import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from study_helper.core.errors import Unauthenticated, ValidationError
from study_helper.dependencies.auth import RequestContext, get_request_context
from study_helper.dependencies.services import get_credential_store, get_usage_tracker
from study_helper.models.user import Account
from study_helper.schemas.auth import AccountDelete, PasswordChange
from study_helper.services.credential_store import CredentialStore
from study_helper.services.usage_tracker import UsageQuotaTracker

logger = logging.getLogger(__name__)

router = APIRouter()


def serialize_account(account: Account, tracker: UsageQuotaTracker) -> Dict[str, Any]:
    usage = tracker.usage_summary(account)
    return {
        "id": account.id,
        "email": account.email,
        "apiUsage": {
            "used": usage["used"],
            "limit": usage["limit"],
            "remaining": usage["remaining"],
            "lastReset": usage["lastReset"],
        },
        "createdAt": account.created_at.isoformat() if account.created_at else None,
    }


@router.get("/me")
def get_me(
    ctx: RequestContext = Depends(get_request_context),
    tracker: UsageQuotaTracker = Depends(get_usage_tracker),
):
    """Get current user profile"""
    return {"success": True, "account": serialize_account(ctx.account, tracker)}


@router.put("/password")
def change_password(
    password_data: PasswordChange,
    ctx: RequestContext = Depends(get_request_context),
    store: CredentialStore = Depends(get_credential_store),
):
    """Change password after re-verifying the current one"""
    if not password_data.current_password or not password_data.new_password:
        raise ValidationError("Please provide current and new password")

    if not store.verify_password(ctx.account, password_data.current_password):
        logger.warning("[AUTH] Wrong current password for account %s", ctx.account.id)
        raise Unauthenticated("Current password is incorrect")

    store.update_password(ctx.account, password_data.new_password)
    return {"success": True, "message": "Password updated successfully"}


@router.delete("/account")
def delete_account(
    body: AccountDelete,
    ctx: RequestContext = Depends(get_request_context),
    store: CredentialStore = Depends(get_credential_store),
):
    """Delete the caller's account and all of its history"""
    if not body.password:
        raise ValidationError("Please provide your password to confirm deletion")

    if not store.verify_password(ctx.account, body.password):
        logger.warning("[AUTH] Wrong password on account deletion for account %s", ctx.account.id)
        raise Unauthenticated("Password is incorrect")

    store.delete(ctx.account)
    return {"success": True, "message": "Account deleted successfully"}
