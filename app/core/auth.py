"""
Authentication dependencies.

The frontend logs in through POST /auth/login and sends the returned JWT in
the Authorization header. This module verifies the JWT and loads the user it
names from the database, so role and OPD are always current.
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.core.security import decode_access_token
from app.models.enums import UserRole
from app.models.user import User

# Security scheme for Bearer token
security = HTTPBearer()


def verify_token(token: str) -> dict:
    """
    Verify an access token and return its decoded payload.

    Args:
        token: JWT token from Authorization header

    Returns:
        Decoded JWT payload ({"sub": "<user id>", "role": ..., "exp": ...})

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        return decode_access_token(token)
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication credentials: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    FastAPI dependency to get the current authenticated user.

    Usage in route:
        @router.get("/protected")
        def protected_route(current_user: User = Depends(get_current_user)):
            return {"user_id": current_user.id, "role": current_user.role}

    Raises:
        HTTPException: If token is missing, invalid or expired, or the user
        no longer exists or was deactivated
    """
    payload = verify_token(credentials.credentials)

    user_id = payload.get("sub")
    if not user_id or not str(user_id).isdigit():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate user",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.query(User).filter(User.id == int(user_id)).first()
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate user",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_role(*roles: UserRole):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.delete("/opds/{opd_id}")
        def delete_opd(
            opd_id: int,
            current_user: User = Depends(require_role(UserRole.ADMIN)),
        ):
            ...
    """
    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            allowed = ", ".join(r.value for r in roles)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required role: {allowed}",
            )
        return current_user
    return role_checker


get_current_admin = require_role(UserRole.ADMIN)
