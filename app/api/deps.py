"""API Dependencies"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel

from app.database import get_db  # noqa: F401  re-exported for endpoints
from app.core.security import ADMIN_ROLES, decode_token
from app.services.oss import BlobService, ConfigMissing, get_blob_service

# Security scheme for bearer token
security = HTTPBearer()

SUPERADMIN_ROLE = "owner"


class TokenClaims(BaseModel):
    """Claims carried by access tokens from the auth service"""
    user_id: UUID
    role: str
    masjid_id: Optional[UUID] = None

    @property
    def is_superadmin(self) -> bool:
        return self.role == SUPERADMIN_ROLE


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_claims(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> TokenClaims:
    """
    Decode the bearer token.

    Raises:
        HTTPException: 401 if the token is invalid or not an access token
    """
    payload = decode_token(credentials.credentials)
    if not payload:
        raise _unauthorized("Could not validate credentials")
    if payload.get("type") != "access":
        raise _unauthorized("Invalid token type")

    try:
        return TokenClaims(
            user_id=payload.get("sub"),
            role=str(payload.get("role") or ""),
            masjid_id=payload.get("masjid_id"),
        )
    except ValueError:
        raise _unauthorized("Invalid token claims")


async def require_masjid_admin(
    claims: TokenClaims = Depends(get_current_claims)
) -> TokenClaims:
    """Admin/DKM of a masjid (or a superadmin)"""
    if claims.is_superadmin:
        return claims
    if claims.role not in ADMIN_ROLES or claims.masjid_id is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions"
        )
    return claims


async def require_superadmin(
    claims: TokenClaims = Depends(get_current_claims)
) -> TokenClaims:
    if not claims.is_superadmin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions"
        )
    return claims


def ensure_masjid_access(claims: TokenClaims, masjid_id: UUID) -> None:
    if not claims.is_superadmin and claims.masjid_id != masjid_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed for this masjid"
        )


def get_blob() -> BlobService:
    """Storage facade; 503 while object storage is not configured"""
    try:
        return get_blob_service()
    except ConfigMissing as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e)
        )
