"""
RefreshToken model: stores issued refresh token values so we can revoke and rotate them
Fields:
- token (unique) - the refresh token value handed to the client
- user_id (String(36)) - FK to users.id
- revoked (bool), revoked_at
- created_at, expires_at
"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base, as_utc


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    token = Column(String(512), nullable=False, unique=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    revoked = Column(Boolean, default=False, nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="refresh_tokens")

    def __init__(self, *args, **kwargs):
        kwargs.setdefault("revoked", False)
        super().__init__(*args, **kwargs)

    def is_expired(self, now) -> bool:
        return as_utc(self.expires_at) <= now

    def __repr__(self):
        return f"<RefreshToken user={self.user_id} revoked={self.revoked}>"
