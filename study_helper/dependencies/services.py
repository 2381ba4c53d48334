"""
FastAPI providers for per-request service objects.

Long-lived collaborators (settings, token service, completion client, hasher,
clock) are created once in ``create_app`` and kept on ``app.state``;
database-bound services are built per request around the request's session.
"""
from datetime import timedelta

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from study_helper.core.config import Settings
from study_helper.db.session import get_db
from study_helper.services.completion_client import CompletionClient
from study_helper.services.credential_store import CredentialStore
from study_helper.services.history_store import HistoryStore
from study_helper.services.usage_tracker import UsageQuotaTracker
from study_helper.utils.auth import TokenService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_completion_client(request: Request) -> CompletionClient:
    return request.app.state.completion_client


def get_credential_store(request: Request, db: Session = Depends(get_db)) -> CredentialStore:
    state = request.app.state
    return CredentialStore(
        db,
        state.hasher,
        default_daily_limit=state.settings.default_daily_limit,
        clock=state.clock,
    )


def get_usage_tracker(request: Request, db: Session = Depends(get_db)) -> UsageQuotaTracker:
    state = request.app.state
    return UsageQuotaTracker(
        db,
        window=timedelta(hours=state.settings.usage_window_hours),
        clock=state.clock,
    )


def get_history_store(request: Request, db: Session = Depends(get_db)) -> HistoryStore:
    state = request.app.state
    return HistoryStore(db, max_input_chars=state.settings.max_input_chars, clock=state.clock)
