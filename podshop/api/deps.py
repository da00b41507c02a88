# podshop/api/deps.py
from typing import Iterator

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from podshop.context import AppContext
from podshop.providers.registry import ProviderRegistry, build_registry
from podshop.services.credential_service import CredentialService
from podshop.utils.errors import AuthError, ForbiddenError
from podshop.utils.security import decode_access_token

bearer = HTTPBearer(auto_error=False)


def get_ctx(request: Request) -> AppContext:
    return request.app.state.ctx


def get_db(ctx: AppContext = Depends(get_ctx)) -> Iterator[Session]:
    with ctx.session() as db:
        yield db


def get_registry(db: Session = Depends(get_db), ctx: AppContext = Depends(get_ctx)) -> ProviderRegistry:
    # klucze z panelu admina wygrywaja z env, wiec registry budowane per request
    return build_registry(CredentialService(db, ctx.cipher).provider_credentials())


def get_optional_user(credentials: HTTPAuthorizationCredentials | None = Depends(bearer)) -> dict | None:
    if credentials is None:
        return None
    return decode_access_token(credentials.credentials)


def get_current_user(user: dict | None = Depends(get_optional_user)) -> dict:
    if user is None:
        raise AuthError("Authentication required")
    return user


def require_admin(user: dict = Depends(get_current_user)) -> dict:
    if user.get("role") != "ADMIN":
        raise ForbiddenError("Admin access required")
    return user
