"""
Auth Module - Service Layer
=============================
Email/password sign-up and sign-in.
"""

import logging
import re

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from common.exceptions import AuthenticationError, ValidationError, DuplicateError
from common.i18n import TKey
from common.security import hash_password, verify_password
from config.settings import MIN_PASSWORD_LENGTH
from modules.user.models import User, UserRole

logger = logging.getLogger("jomla.auth")

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class AuthService:

    def signup(
        self, db: Session, email: str, password: str,
        full_name: str = "", phone_number: str = "",
    ) -> User:
        """Create a customer account. Raises ValidationError / DuplicateError."""
        email = normalize_email(email)
        if not _EMAIL.match(email):
            raise ValidationError("البريد الإلكتروني غير صالح")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"كلمة المرور يجب أن تكون {MIN_PASSWORD_LENGTH} أحرف على الأقل")
        if not (full_name or "").strip():
            raise ValidationError("الاسم الكامل مطلوب")

        if db.query(User.id).filter(User.email == email).first():
            raise DuplicateError("البريد الإلكتروني مستخدم مسبقاً")

        user = User(
            email=email,
            password_hash=hash_password(password),
            role=UserRole.CUSTOMER.value,
            full_name=full_name.strip(),
            phone_number=(phone_number or "").strip() or None,
        )
        try:
            db.add(user)
            db.flush()
        except IntegrityError as e:
            db.rollback()
            raise DuplicateError("البريد الإلكتروني مستخدم مسبقاً") from e
        logger.info(f"New customer signed up: #{user.id}")
        return user

    def authenticate(self, db: Session, email: str, password: str) -> User:
        """Return the active user for these credentials or raise AuthenticationError."""
        user = db.query(User).filter(User.email == normalize_email(email)).first()
        if not user or not user.is_active or not verify_password(password, user.password_hash):
            logger.info(f"Failed sign-in for {normalize_email(email)}")
            raise AuthenticationError(TKey.AUTH_INVALID_CREDENTIALS)
        return user

    def create_admin(self, db: Session, email: str, password: str, full_name: str = "") -> User:
        """Create or promote an admin account (used by scripts/seed.py)."""
        email = normalize_email(email)
        user = db.query(User).filter(User.email == email).first()
        if user is None:
            user = User(email=email, full_name=full_name or "Admin")
            db.add(user)
        user.password_hash = hash_password(password)
        user.role = UserRole.ADMIN.value
        user.is_active = True
        db.flush()
        return user


# Singleton
auth_service = AuthService()
