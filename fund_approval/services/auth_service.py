"""
Authentication Service
Resolves the calling user from a bearer token
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from fund_approval.config.database import get_db
from fund_approval.models.user import User
from fund_approval.utils.security import decode_token
from fund_approval.utils.logger import setup_logger

logger = setup_logger()

bearer_scheme = HTTPBearer(auto_error=False)


class AuthService:
    """Authentication service (tokens are issued elsewhere; we only verify them)"""

    async def get_current_user(
        self,
        credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
        db: Session = Depends(get_db)
    ) -> User:
        """
        Get current authenticated user from token

        Args:
            credentials: Bearer credentials
            db: Database session

        Returns:
            User: Current user

        Raises:
            HTTPException: If authentication fails
        """
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

        if credentials is None:
            raise credentials_exception

        payload = decode_token(credentials.credentials)
        if payload is None or payload.get("type") != "access":
            raise credentials_exception

        user_id = payload.get("sub")
        if user_id is None or not str(user_id).isdigit():
            raise credentials_exception

        user = db.query(User).filter(User.id == int(user_id)).first()
        if user is None:
            raise credentials_exception

        if user.is_active is False:
            logger.warning(f"Inactive user {user.id} attempted access")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="User account is inactive"
            )

        return user


# Create singleton instance
auth_service = AuthService()
