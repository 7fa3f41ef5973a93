from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.database import get_db
from app.core.security import decode_access_token
from app.models.user import User
from app.services.user_repository import user_repository

# OAuth2 password bearer scheme - extracts token from Authorization header
# tokenUrl tells FastAPI where to find the login endpoint for Swagger UI
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login", auto_error=False)


async def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """
    Get current authenticated user from JWT token.

    The token subject is the username. If the token is invalid or the user
    no longer exists, raises 401 Unauthorized.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if settings.DISABLE_AUTH:
        # Dev bypass runs every request as the seeded admin account
        user = user_repository.find_one_by_username(db, settings.ADMIN_USERNAME.lower())
        if user:
            return user
        raise credentials_exception

    if token is None:
        raise credentials_exception

    payload = decode_access_token(token)
    if payload is None:
        raise credentials_exception

    username = payload.get("sub")
    if not username:
        raise credentials_exception

    # If user was deleted after token was issued, this will be None
    user = user_repository.find_one_by_username(db, username)
    if user is None:
        raise credentials_exception

    # Prevents disabled accounts from accessing the system
    if not user.activated:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is not activated"
        )

    return user


class RequireAuthority:
    """
    Role gate evaluated before a route handler runs.

    Usage: dependencies=[Depends(RequireAuthority(Authorities.ADMIN))].
    Authorities are read from the database rather than the token so that a
    revoked role takes effect on the next request.
    """

    def __init__(self, authority: str):
        self.authority = authority

    async def __call__(
        self,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
    ) -> User:
        if self.authority not in user_repository.load_authorities(db, current_user):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{self.authority} authority required"
            )
        return current_user
