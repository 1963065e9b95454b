import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from sitside.auth import jwt_handler
from sitside.core import errors
from sitside.database import get_db
from sitside.models.user import ROLE_ADMIN, ROLE_PARENT, ROLE_STUDENT, User

security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise errors.AuthenticationError("No token provided, authorization denied")

    try:
        payload = jwt_handler.decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError as exc:
        raise errors.AuthenticationError("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise errors.AuthenticationError("Token is not valid") from exc

    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise errors.AuthenticationError("Invalid token subject") from exc

    user = db.get(User, user_id)
    if user is None:
        raise errors.AuthenticationError("Token is not valid - user not found")
    if not user.is_active:
        raise errors.AuthenticationError("Account has been suspended")
    return user


def require_role(*roles: str):
    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise errors.AuthorizationError(f"Access denied. Required roles: {', '.join(roles)}")
        return current_user

    return dependency


require_student = require_role(ROLE_STUDENT)
require_admin = require_role(ROLE_ADMIN)
require_student_or_parent = require_role(ROLE_STUDENT, ROLE_PARENT)
