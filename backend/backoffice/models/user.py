from sqlalchemy import Column, Integer, String, DateTime, func, UniqueConstraint
from backoffice.models.base import Base


class AppUser(Base):
    """Account owning a tenant's suppliers, investors, purchases and sales."""

    __tablename__ = "app_users"
    __table_args__ = (
        UniqueConstraint("username", name="uq_app_users_username"),
    )

    user_id = Column(Integer, primary_key=True, index=True)
    username = Column(String(150), nullable=False)
    full_name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
