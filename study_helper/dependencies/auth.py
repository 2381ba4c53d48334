"""
Auth gate for protected routes.

Resolves the ``Authorization: Bearer <token>`` header into a RequestContext.
Identities are re-verified on every request; nothing is cached.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header

from study_helper.core.errors import Unauthenticated
from study_helper.models.user import Account
from study_helper.dependencies.services import get_credential_store, get_token_service
from study_helper.services.credential_store import CredentialStore
from study_helper.utils.auth import TokenClaims, TokenService

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


@dataclass(frozen=True)
class RequestContext:
    """Who is calling. Handed to route handlers by ``get_request_context``."""
    account: Account
    claims: TokenClaims


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.lower().startswith(BEARER_PREFIX):
        logger.warning("[AUTH] No token provided or invalid format")
        raise Unauthenticated("Not authorized, no token")

    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        logger.warning("[AUTH] Token is empty after scheme prefix")
        raise Unauthenticated("Not authorized, no token")
    return token


class AuthGate:
    def __init__(self, token_service: TokenService, credential_store: CredentialStore):
        self.token_service = token_service
        self.credential_store = credential_store

    def resolve(self, authorization: Optional[str]) -> RequestContext:
        token = extract_bearer_token(authorization)

        # TokenExpired / TokenMalformed propagate with their own messages
        claims = self.token_service.verify(token)

        account = self.credential_store.find_by_id(claims.account_id)
        if not account:
            # Account deleted while the token was still valid
            logger.warning("[AUTH] Account not found: %s", claims.account_id)
            raise Unauthenticated("User not found")

        return RequestContext(account=account, claims=claims)


def get_request_context(
    authorization: Optional[str] = Header(None),
    token_service: TokenService = Depends(get_token_service),
    credential_store: CredentialStore = Depends(get_credential_store),
) -> RequestContext:
    """FastAPI dependency: the main way routes learn who is calling."""
    return AuthGate(token_service, credential_store).resolve(authorization)
