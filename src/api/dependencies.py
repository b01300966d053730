"""FastAPI dependencies for caller identity, authorization and services."""

from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from src.database.db import get_db
from src.services.stock_sync_service import StockSyncService
from src.services.token_service import ROLES, TokenService

# HTTP Bearer token security scheme
security = HTTPBearer()


@dataclass
class Caller:
    """Identity and role supplied by the authentication collaborator."""

    subject: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def get_current_caller(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Caller:
    """
    FastAPI dependency resolving the caller from the bearer token.

    Raises:
        HTTPException: 401 if the token is invalid, expired or lacks identity claims
    """
    try:
        payload = TokenService.verify_token(credentials.credentials)
    except Exception as e:
        # Expired token, invalid signature, malformed token
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Could not validate credentials: {e}",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"},
        )

    subject = payload.get("sub")
    role = payload.get("role")
    if not subject or role not in ROLES:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return Caller(subject=subject, role=role)


def require_admin(caller: Caller = Depends(get_current_caller)) -> Caller:
    """
    FastAPI dependency restricting an endpoint to admins.

    Raises:
        HTTPException: 403 if the caller is not an admin
    """
    if not caller.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to manage stocks",
        )
    return caller


def get_sync_service(db: Session = Depends(get_db)) -> StockSyncService:
    """FastAPI dependency providing the sync service bound to the request session."""
    return StockSyncService(db_session=db)
