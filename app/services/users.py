"""Account service: registration, activation, profile, and password reset."""

import logging
import math
import secrets
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.exceptions import (
    AuthenticationFailure,
    DuplicateEmail,
    EmailDeliveryFailure,
    Forbidden,
    InvalidToken,
    NotFound,
    StorageError,
    ValidationFailure,
)
from app.models.user import User
from app.services.email import EmailService, get_email_service
from app.services.files import FileService, get_file_service
from app.services.passwords import hash_password, verify_password
from app.services.tokens import TokenService, get_token_service
from app.validation import check_email, check_password, check_username, collect_errors, is_valid_email

logger = logging.getLogger("accounts.users")

ONE_TIME_TOKEN_BYTES = 8  # 16 hex characters


def generate_one_time_token() -> str:
    return secrets.token_hex(ONE_TIME_TOKEN_BYTES)


@dataclass
class UserPage:
    """One page of active users."""

    content: list[User]
    page: int
    size: int
    total_pages: int


@dataclass
class LoginResult:
    user: User
    token: str


class UserService:
    """Orchestrates account operations over storage, mail, and files."""

    def __init__(
        self,
        token_service: TokenService | None = None,
        email_service: EmailService | None = None,
        file_service: FileService | None = None,
    ) -> None:
        self._token_service = token_service
        self._email_service = email_service
        self._file_service = file_service

    @property
    def tokens(self) -> TokenService:
        return self._token_service or get_token_service()

    @property
    def emails(self) -> EmailService:
        return self._email_service or get_email_service()

    @property
    def files(self) -> FileService:
        return self._file_service or get_file_service()

    # --- Lookups ---

    def find_by_email(self, db: Session, email: str) -> User | None:
        return db.query(User).filter(User.email == email).first()

    def find_by_password_reset_token(self, db: Session, token: str | None) -> User | None:
        if not token:
            return None
        return db.query(User).filter(User.password_reset_token == token).first()

    # --- Registration and activation ---

    def validate_registration(
        self, db: Session, username: str | None, email: str | None, password: str | None
    ) -> None:
        """Raise ValidationFailure with every failing field, in field order."""
        email_error = check_email(email)
        if email_error is None and self.find_by_email(db, email):
            email_error = "email_inuse"
        errors = collect_errors(
            ("username", check_username(username)),
            ("email", email_error),
            ("password", check_password(password)),
        )
        if errors:
            raise ValidationFailure(errors)

    async def register(self, db: Session, username: str, email: str, password: str, locale: str = "en") -> User:
        """Create an inactive user and mail its activation token.

        The insert is rolled back if the activation mail cannot be sent, so no
        unreachable account survives a delivery failure.
        """
        if self.find_by_email(db, email):
            raise DuplicateEmail()

        user = User(
            username=username,
            email=email,
            password=hash_password(password),
            inactive=True,
            activation_token=generate_one_time_token(),
        )
        db.add(user)
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            raise DuplicateEmail() from None

        try:
            await self.emails.send_account_activation(email, user.activation_token, locale)
        except EmailDeliveryFailure:
            db.rollback()
            logger.warning("Registration of %s rolled back: activation mail failed", email)
            raise

        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError() from e
        db.refresh(user)
        logger.info("Registered user %s", user.id)
        return user

    def activate(self, db: Session, token: str) -> User:
        user = db.query(User).filter(User.activation_token == token).first()
        if not user:
            raise InvalidToken()
        user.inactive = False
        user.activation_token = None
        db.commit()
        logger.info("Activated user %s", user.id)
        return user

    # --- Authentication ---

    def authenticate(self, db: Session, email: str | None, password: str | None) -> LoginResult:
        """Verify credentials and issue a session token.

        Unknown users and wrong passwords are 401; correct credentials on an
        inactive account are 403.
        """
        if not email or not password or not is_valid_email(email):
            raise AuthenticationFailure()
        user = self.find_by_email(db, email)
        if not user or not verify_password(password, user.password):
            raise AuthenticationFailure()
        if user.inactive:
            raise Forbidden("inactive_authentication_failure")
        token = self.tokens.issue(db, user.id)
        return LoginResult(user=user, token=token)

    def logout(self, db: Session, token: str | None) -> None:
        if token:
            self.tokens.revoke(db, token)

    # --- Queries ---

    def get_users(self, db: Session, page: int, size: int, exclude_user_id: int | None = None) -> UserPage:
        query = db.query(User).filter(User.inactive.is_(False))
        if exclude_user_id is not None:
            query = query.filter(User.id != exclude_user_id)
        total = query.count()
        offset = page * size
        # Pages past the end never reach OFFSET
        users = query.order_by(User.id).offset(offset).limit(size).all() if offset < total else []
        return UserPage(content=users, page=page, size=size, total_pages=math.ceil(total / size))

    def get_user(self, db: Session, user_id: int) -> User:
        user = db.query(User).filter(User.id == user_id, User.inactive.is_(False)).first()
        if not user:
            raise NotFound("user_not_found")
        return user

    # --- Profile ---

    def validate_update(self, username: str | None, image: str | None) -> bytes | None:
        """Validate an update body. Returns decoded image bytes if one was sent."""
        image_error = None
        data = None
        if image:
            data = self.files.decode_image(image)
            if data is None:
                image_error = "unsupported_image_file"
            elif not self.files.is_within_size_limit(data):
                image_error = "profile_image_size"
            elif self.files.sniff_image_type(data) is None:
                image_error = "unsupported_image_file"
        errors = collect_errors(
            ("username", check_username(username)),
            ("image", image_error),
        )
        if errors:
            raise ValidationFailure(errors)
        return data

    def update_user(self, db: Session, user_id: int, username: str, image: bytes | None = None) -> User:
        """Update the username and, if given, replace the profile image."""
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFound("user_not_found")
        user.username = username
        old_image = user.image
        new_image = self.files.save_profile_image(image) if image is not None else None
        if new_image:
            user.image = new_image
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            if new_image:
                self.files.delete_profile_image(new_image)
            raise StorageError() from e
        if new_image and old_image:
            self.files.delete_profile_image(old_image)
        db.refresh(user)
        return user

    def delete_user(self, db: Session, user_id: int) -> None:
        """Delete the account, its session tokens, and its profile image."""
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            return
        image = user.image
        self.tokens.revoke_all(db, user_id, commit=False)
        db.delete(user)
        db.commit()
        if image:
            self.files.delete_profile_image(image)
        logger.info("Deleted user %s", user_id)

    # --- Password reset ---

    async def request_password_reset(self, db: Session, email: str | None, locale: str = "en") -> None:
        """Issue a reset token and mail it.

        The token stays persisted even if the mail fails; the caller gets
        EmailDeliveryFailure and the user can request again.
        """
        errors = collect_errors(("email", "email_invalid" if not email or not is_valid_email(email) else None))
        if errors:
            raise ValidationFailure(errors)

        user = self.find_by_email(db, email)
        if not user:
            raise NotFound("email_not_inuse")

        user.password_reset_token = generate_one_time_token()
        db.commit()
        await self.emails.send_password_reset(email, user.password_reset_token, locale)
        logger.info("Password reset requested for user %s", user.id)

    def reset_password(self, db: Session, user: User, password: str | None) -> User:
        """Set a new password, activate the account, and end all its sessions.

        ``user`` has already been resolved from a valid reset token.
        """
        errors = collect_errors(("password", check_password(password)))
        if errors:
            raise ValidationFailure(errors)

        user.password = hash_password(password)
        user.password_reset_token = None
        user.inactive = False
        user.activation_token = None
        self.tokens.revoke_all(db, user.id, commit=False)
        db.commit()
        logger.info("Password reset completed for user %s", user.id)
        return user


_user_service: UserService | None = None


def get_user_service() -> UserService:
    """Get singleton user service instance."""
    global _user_service
    if _user_service is None:
        _user_service = UserService()
    return _user_service
