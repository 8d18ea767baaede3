"""Opaque session token store."""

import logging
import secrets
from datetime import datetime, timedelta

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import utcnow
from app.exceptions import StorageError
from app.models.token import Token

logger = logging.getLogger("accounts.tokens")

TOKEN_BYTES = 32


class TokenService:
    """Issues, resolves and revokes bearer tokens.

    A token is valid while ``now - last_used_at`` stays within the TTL.
    Expired tokens are treated as absent on lookup and deleted on sight;
    ``sweep_expired`` removes the rest in bulk.
    """

    def __init__(self, ttl: timedelta | None = None) -> None:
        self.ttl = ttl or timedelta(days=get_settings().TOKEN_TTL_DAYS)

    def _cutoff(self, now: datetime | None = None) -> datetime:
        return (now or utcnow()) - self.ttl

    def issue(self, db: Session, user_id: int) -> str:
        """Create and persist a new token for the user."""
        value = secrets.token_urlsafe(TOKEN_BYTES)
        db.add(Token(token=value, user_id=user_id, last_used_at=utcnow()))
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError() from e
        logger.info("Issued session token for user %s", user_id)
        return value

    def resolve(self, db: Session, token: str) -> int | None:
        """Return the owning user id and refresh the token, or None if invalid."""
        stored = db.query(Token).filter(Token.token == token).first()
        if not stored:
            return None

        user_id = stored.user_id
        now = utcnow()
        if stored.last_used_at < self._cutoff(now):
            db.delete(stored)
            db.commit()
            logger.info("Evicted expired session token of user %s", user_id)
            return None

        stored.last_used_at = now
        db.commit()
        return user_id

    def revoke(self, db: Session, token: str) -> None:
        """Delete a token. Unknown tokens are ignored."""
        db.execute(delete(Token).where(Token.token == token))
        db.commit()

    def revoke_all(self, db: Session, user_id: int, commit: bool = True) -> int:
        """Delete every token owned by the user."""
        result = db.execute(delete(Token).where(Token.user_id == user_id))
        if commit:
            db.commit()
        if result.rowcount:
            logger.info("Revoked %d session tokens of user %s", result.rowcount, user_id)
        return result.rowcount

    def sweep_expired(self, db: Session) -> int:
        """Delete all expired tokens in one statement. Returns the count."""
        result = db.execute(delete(Token).where(Token.last_used_at < self._cutoff()))
        db.commit()
        return result.rowcount


_token_service: TokenService | None = None


def get_token_service() -> TokenService:
    """Get singleton token service instance."""
    global _token_service
    if _token_service is None:
        _token_service = TokenService()
    return _token_service
