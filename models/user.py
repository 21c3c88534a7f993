from models.base_model import Base, BaseModel
from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.orm import relationship


class User(BaseModel, Base):
    __tablename__ = "users"
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        passive_deletes=True
    )

    def __init__(self, *args, **kwargs):
        kwargs.setdefault("is_active", True)
        super().__init__(*args, **kwargs)

    def __repr__(self):
        return f"<User email={self.email}>"
