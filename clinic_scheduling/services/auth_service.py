from sqlalchemy.orm import Session
from datetime import datetime, timedelta
from typing import Optional
import hashlib
import logging

from ..models.user import User, RefreshToken
from ..core.exceptions import Unauthenticated, ValidationError
from ..core.security import (
    verify_password, get_password_hash, create_token_pair, verify_token
)
from ..schemas.auth import UserLogin, UserRegister, TokenResponse, UserResponse

logger = logging.getLogger(__name__)

class AuthService:
    """Identity store: actor accounts, credentials and token issue."""

    def __init__(self, db: Session):
        self.db = db

    def find_actor_by_id(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def find_actor_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def create_user(self, name: str, email: str, password: str, role) -> User:
        """Add a user to the session without committing."""
        if self.find_actor_by_email(email):
            raise ValidationError("Email already registered")

        user = User(
            name=name,
            email=email,
            password_hash=get_password_hash(password),
            role=role,
            is_active=True,
        )
        self.db.add(user)
        self.db.flush()
        return user

    def register_user(self, user_data: UserRegister) -> User:
        """Register a new user."""
        user = self.create_user(
            user_data.name, user_data.email, user_data.password, user_data.role
        )
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"Registered user {user.id} with role {user.role.value}")
        return user

    def authenticate_user(self, login_data: UserLogin) -> TokenResponse:
        """Authenticate user and return tokens."""
        user = self.find_actor_by_email(login_data.email)

        if not user or not verify_password(login_data.password, user.password_hash):
            logger.info(f"Failed login for {login_data.email}")
            raise Unauthenticated("Invalid email or password")

        if not user.is_active:
            raise Unauthenticated("Account is deactivated")

        user.last_login = datetime.utcnow()
        response = self._issue_tokens(user)
        self.db.commit()
        return response

    def refresh_access_token(self, refresh_token: str) -> TokenResponse:
        """Refresh access token using refresh token."""
        token_payload = verify_token(refresh_token)
        if not token_payload or token_payload.token_type != "refresh":
            raise Unauthenticated("Invalid refresh token")

        stored_token = self.db.query(RefreshToken).filter(
            RefreshToken.token_hash == self._hash(refresh_token),
            RefreshToken.is_revoked == False,  # noqa: E712
            RefreshToken.expires_at > datetime.utcnow()
        ).first()

        if not stored_token:
            raise Unauthenticated("Invalid or expired refresh token")

        user = self.find_actor_by_id(token_payload.user_id)
        if not user or not user.is_active:
            raise Unauthenticated("User not found or inactive")

        response = self._issue_tokens(user)
        self.db.commit()
        return response

    def logout_user(self, refresh_token: str) -> bool:
        """Logout user by revoking refresh token."""
        stored_token = self.db.query(RefreshToken).filter(
            RefreshToken.token_hash == self._hash(refresh_token)
        ).first()

        if not stored_token:
            return False

        stored_token.is_revoked = True
        self.db.commit()
        return True

    def _issue_tokens(self, user: User) -> TokenResponse:
        tokens = create_token_pair(user.id, user.email, user.role)
        self._store_refresh_token(user.id, tokens.refresh_token)

        return TokenResponse(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            token_type=tokens.token_type,
            expires_in=tokens.expires_in,
            user=UserResponse.model_validate(user)
        )

    @staticmethod
    def _hash(token: str) -> str:
        return hashlib.sha256(token.encode()).hexdigest()

    def _store_refresh_token(self, user_id: int, refresh_token: str):
        """Store refresh token, revoking any earlier ones for the user."""
        token_payload = verify_token(refresh_token)
        if token_payload and token_payload.exp:
            expires_at = datetime.utcfromtimestamp(token_payload.exp)
        else:
            expires_at = datetime.utcnow() + timedelta(days=7)

        self.db.query(RefreshToken).filter(
            RefreshToken.user_id == user_id
        ).update({"is_revoked": True})

        self.db.add(RefreshToken(
            user_id=user_id,
            token_hash=self._hash(refresh_token),
            expires_at=expires_at
        ))
