import logging
from dataclasses import dataclass

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from .config import JWT_ALGORITHM, SECRET_KEY
from .domain.scheduling.enums import UserRole

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """Authenticated caller resolved from the identity service token"""

    user_id: int
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def decode_access_token(token: str) -> Principal:
    """
    Verify an HS256 access token issued by the identity service.

    The subject carries the user id and the "role" claim the user role.
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"⚠️ Invalid access token: {e}")
        raise HTTPException(status_code=401, detail="Invalid or expired token") from e

    subject = payload.get("sub")
    role = payload.get("role")
    try:
        return Principal(user_id=int(subject), role=UserRole(str(role).upper()))
    except (TypeError, ValueError) as e:
        logger.warning(f"⚠️ Token claims rejected: sub={subject!r} role={role!r}")
        raise HTTPException(status_code=401, detail="Invalid token claims") from e


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Principal:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return decode_access_token(credentials.credentials)


async def require_client(principal: Principal = Depends(get_current_principal)) -> Principal:
    if principal.role != UserRole.CLIENT:
        raise HTTPException(status_code=403, detail="Client access required")
    return principal


async def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if principal.role != UserRole.ADMIN:
        raise HTTPException(status_code=403, detail="Admin access required")
    return principal
