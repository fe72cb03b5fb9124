import uuid
from collections.abc import Generator
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt.exceptions import InvalidTokenError
from pydantic import ValidationError
from sqlmodel import Session

from aiassess.assistant.gateway import GatewayClient
from aiassess.audit import AuditLogger, RequestContext
from aiassess.core.config import settings
from aiassess.core.db import engine
from aiassess.models import AuthUser, TokenPayload

bearer_scheme = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_db)]
TokenDep = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]


def decode_access_token(token: str) -> AuthUser:
    """Verify a bearer token issued by the hosted auth service."""
    try:
        payload = jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=[settings.AUTH_JWT_ALGORITHM],
            audience=settings.AUTH_JWT_AUDIENCE,
        )
        token_data = TokenPayload(**payload)
        user_id = uuid.UUID(token_data.sub or "")
    except (InvalidTokenError, ValidationError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Could not validate credentials",
        )
    return AuthUser(id=user_id, email=token_data.email, role=token_data.role or "authenticated")


def get_optional_user(credentials: TokenDep) -> AuthUser | None:
    if credentials is None:
        return None
    try:
        return decode_access_token(credentials.credentials)
    except HTTPException:
        return None


def get_current_user(credentials: TokenDep) -> AuthUser:
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return decode_access_token(credentials.credentials)


OptionalUser = Annotated[AuthUser | None, Depends(get_optional_user)]
CurrentUser = Annotated[AuthUser, Depends(get_current_user)]


def get_seed_admin(current_user: CurrentUser) -> AuthUser:
    if current_user.role not in settings.SEED_ADMIN_ROLES:
        raise HTTPException(status_code=403, detail="The user doesn't have enough privileges")
    return current_user


SeedAdmin = Annotated[AuthUser, Depends(get_seed_admin)]


def get_request_context(request: Request) -> RequestContext:
    return RequestContext.from_request(request)


RequestContextDep = Annotated[RequestContext, Depends(get_request_context)]


def get_audit_logger(session: SessionDep, user: OptionalUser, context: RequestContextDep) -> AuditLogger:
    return AuditLogger(session, user=user, context=context)


AuditLoggerDep = Annotated[AuditLogger, Depends(get_audit_logger)]


@lru_cache
def get_gateway_client() -> GatewayClient:
    return GatewayClient()


GatewayDep = Annotated[GatewayClient, Depends(get_gateway_client)]
