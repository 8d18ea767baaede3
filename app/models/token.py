"""Session token model."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.database import Base, utcnow


class Token(Base):
    """Opaque bearer token bound to a user, valid while recently used."""

    __tablename__ = "token"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token = Column(String(64), unique=True, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    last_used_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    user = relationship("User", back_populates="tokens")
