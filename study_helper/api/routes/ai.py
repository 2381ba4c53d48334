"""
AI completion proxy with per-account daily quota.
"""
import logging

from fastapi import APIRouter, Depends

from study_helper.core.config import Settings
from study_helper.core.errors import QuotaExceeded, UpstreamFailure, ValidationError
from study_helper.core.throttle import throttle
from study_helper.dependencies.auth import RequestContext, get_request_context
from study_helper.dependencies.services import get_completion_client, get_settings, get_usage_tracker
from study_helper.schemas.ai import CompletionRequest
from study_helper.services.completion_client import CompletionClient
from study_helper.services.usage_tracker import UsageQuotaTracker

logger = logging.getLogger(__name__)

router = APIRouter()


def _quota_exceeded(tracker: UsageQuotaTracker, ctx: RequestContext) -> QuotaExceeded:
    usage = tracker.usage_summary(ctx.account)
    logger.info(
        "Daily limit reached for account %s (%s/%s)",
        ctx.account.id,
        usage["used"],
        usage["limit"],
    )
    return QuotaExceeded(
        f"Daily API limit reached. Limit resets in {usage['resetsIn']}.",
        extra={"usage": usage},
    )


@router.post("/request", dependencies=[Depends(throttle("ai"))])
def make_completion_request(
    body: CompletionRequest,
    ctx: RequestContext = Depends(get_request_context),
    tracker: UsageQuotaTracker = Depends(get_usage_tracker),
    client: CompletionClient = Depends(get_completion_client),
    settings: Settings = Depends(get_settings),
):
    """
    Forward a system prompt and user text to the completion API.
    Only successful completions count against the daily limit.
    """
    if not body.system_prompt or not body.user_text:
        raise ValidationError("Missing systemPrompt or userText")
    if len(body.user_text) > settings.max_input_chars:
        raise ValidationError(f"Input text cannot exceed {settings.max_input_chars} characters")

    account = ctx.account

    if settings.strict_quota:
        if not tracker.try_consume(account):
            raise _quota_exceeded(tracker, ctx)
        try:
            result = client.complete(body.system_prompt, body.user_text)
        except UpstreamFailure:
            tracker.release(account)
            raise
    else:
        # Check-then-increment: concurrent requests may overshoot the limit
        if not tracker.check_admission(account):
            raise _quota_exceeded(tracker, ctx)
        result = client.complete(body.system_prompt, body.user_text)
        tracker.increment(account)

    return {
        "success": True,
        "result": result,
        "usage": tracker.usage_summary(account),
    }


@router.get("/usage")
def get_usage_stats(
    ctx: RequestContext = Depends(get_request_context),
    tracker: UsageQuotaTracker = Depends(get_usage_tracker),
):
    return {"success": True, "usage": tracker.usage_summary(ctx.account)}


@router.post("/reset")
def reset_usage(
    ctx: RequestContext = Depends(get_request_context),
    tracker: UsageQuotaTracker = Depends(get_usage_tracker),
):
    """Force-reset the caller's usage window"""
    tracker.reset(ctx.account)
    return {
        "success": True,
        "message": "Usage reset successfully",
        "usage": tracker.usage_summary(ctx.account),
    }
