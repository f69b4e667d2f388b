"""Authentication service: credentials in, JWT out, identity back."""
import logging
from datetime import datetime
from typing import Callable, Optional, Tuple

from flask_jwt_extended import create_access_token, create_refresh_token

from campus_attendance.models.user import User
from campus_attendance.services.identity import Identity
from campus_attendance.utils.errors import AuthenticationError
from campus_attendance.utils.helpers import utcnow

logger = logging.getLogger(__name__)

class AuthService:

    def __init__(self, db_session, clock: Callable[[], datetime] = utcnow):
        self.db = db_session
        self.clock = clock

    @staticmethod
    def identity_claims(user: User) -> dict:
        return {
            'role': user.role.value,
            'role_level': user.role_level,
            'username': user.username,
        }

    def issue_tokens(self, user: User) -> dict:
        identity = str(user.id)
        claims = self.identity_claims(user)
        return {
            'access_token': create_access_token(identity=identity, additional_claims=claims),
            'refresh_token': create_refresh_token(identity=identity, additional_claims=claims),
        }

    def login(self, login: str, password: str) -> Tuple[Optional[dict], Optional[str]]:
        """Authenticate by email or username and return tokens."""
        if not login or not password:
            return None, "Login and password are required"

        login = login.strip()
        user = self.db.query(User).filter(
            (User.email == login.lower()) | (User.username == login)
        ).first()

        if not user or not user.check_password(password):
            logger.info('Failed login for %s', login)
            return None, "Invalid credentials"

        if not user.is_active:
            return None, "Account is deactivated"

        user.last_login = self.clock()
        self.db.commit()

        tokens = self.issue_tokens(user)
        tokens['user'] = user.to_dict()
        return tokens, None

    def resolve_identity(self, subject, claims: dict) -> Identity:
        """Turn a verified token into an Identity, or raise AuthenticationError."""
        try:
            user_id = int(subject)
        except (TypeError, ValueError):
            raise AuthenticationError('Invalid token subject')

        user = self.db.get(User, user_id)
        if user is None or not user.is_active:
            raise AuthenticationError('User not found or inactive')

        # The stored role wins over the one baked into an older token.
        return Identity(
            user_id=user.id,
            role=user.role,
            role_level=user.role_level,
            username=claims.get('username', user.username),
        )

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

