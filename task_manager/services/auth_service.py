"""Authentication service: bcrypt password hashing and JWT access tokens."""

import logging
from datetime import timedelta
from typing import Optional, Tuple

import bcrypt
from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError
from pydantic import BaseModel

from ..clock import Clock, utc_now
from ..config import Settings
from ..exceptions import DuplicateEntityError, UnauthorizedError, ValidationError
from ..models.user import User, validate_password
from ..repositories.base import UserRepository

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72


class TokenClaims(BaseModel):
    """Identity resolved from a verified access token."""
    owner_id: str
    username: str
    email: str


class PasswordHasher:
    """bcrypt password hashing."""

    def __init__(self, rounds: int = 10):
        self.rounds = rounds

    @staticmethod
    def _encode(password: str) -> bytes:
        return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(self._encode(password), salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(self._encode(password), password_hash.encode("utf-8"))
        except ValueError:
            # Malformed stored hash
            return False


class TokenService:
    """Issues and verifies signed JWT access tokens."""

    def __init__(self, secret: str, algorithm: str = "HS256", expire_minutes: int = 1440, clock: Clock = utc_now):
        if not secret:
            raise ValueError("JWT secret is required")
        self.secret = secret
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes
        self.clock = clock

    def issue(self, user: User) -> str:
        """Create an access token for ``user``."""
        now = self.clock()
        payload = {
            "sub": user.id,
            "username": user.username,
            "email": user.email,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(minutes=self.expire_minutes)).timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """Decode and verify a token.

        Raises:
            UnauthorizedError: If the token is missing, expired or invalid
        """
        if not token:
            raise UnauthorizedError("Token is required")
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise UnauthorizedError("Token has expired")
        except JWTError:
            raise UnauthorizedError("Invalid token")

        if not payload.get("sub"):
            raise UnauthorizedError("Invalid token")
        return TokenClaims(
            owner_id=payload["sub"],
            username=payload.get("username", ""),
            email=payload.get("email", ""),
        )


class AuthService:
    """Register, log in and verify users."""

    def __init__(
        self,
        repository: UserRepository,
        hasher: PasswordHasher,
        tokens: TokenService,
        clock: Clock = utc_now,
    ):
        self.repository = repository
        self.hasher = hasher
        self.tokens = tokens
        self.clock = clock
        logger.info("Auth service initialized")

    def register(self, username: str, email: str, password: str) -> User:
        """Register a new user.

        Raises:
            ValidationError: If a field is missing or malformed
            DuplicateEntityError: If the email or username is taken
        """
        if not username or not email or not password:
            raise ValidationError("Username, email, and password are required")
        validate_password(password)

        if self.repository.find_by_email(email):
            raise DuplicateEntityError("User", "email", email.strip().lower())
        if self.repository.find_by_username(username):
            raise DuplicateEntityError("User", "username", username)

        user = User.create(username, email, self.hasher.hash(password), clock=self.clock)
        saved = self.repository.save(user)

        logger.info(f"Registered user {saved.id} ({saved.username})")
        return saved

    def login(self, email: str, password: str) -> Tuple[str, User]:
        """Authenticate by email and password.

        Returns:
            Access token and the authenticated user

        Raises:
            UnauthorizedError: If the credentials do not match
        """
        if not email or not password:
            raise ValidationError("Email and password are required")

        user = self.repository.find_by_email(email)
        if user is None or not self.hasher.verify(password, user.password_hash):
            logger.warning(f"Failed login attempt for {email}")
            raise UnauthorizedError("Invalid email or password")

        logger.info(f"User {user.id} logged in")
        return self.tokens.issue(user), user

    def verify(self, token: str) -> TokenClaims:
        """Resolve a token to the identity of an existing user.

        Raises:
            UnauthorizedError: If the token is invalid or the user is gone
        """
        claims = self.tokens.verify(token)
        if self.repository.find_by_id(claims.owner_id) is None:
            raise UnauthorizedError("User no longer exists")
        return claims


# Global auth service instance - will be initialized during app startup
_auth_service: Optional[AuthService] = None


def get_auth_service() -> Optional[AuthService]:
    """Get the global auth service instance."""
    return _auth_service


def initialize_auth_service(repository: UserRepository, settings: Settings) -> AuthService:
    """Initialize the global auth service instance from settings."""
    global _auth_service
    _auth_service = AuthService(
        repository,
        PasswordHasher(settings.bcrypt_rounds),
        TokenService(settings.jwt_secret, settings.jwt_algorithm, settings.jwt_expire_minutes),
    )
    return _auth_service
