"""SQLAlchemy model for beta access keys."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from feedback_engine.common.models import Base, TimestampMixin, generate_uuid


class BetaAccessKeyModel(Base, TimestampMixin):
    __tablename__ = "beta_access_keys"
    __table_args__ = (
        CheckConstraint("uses_count <= max_uses", name="ck_beta_uses_within_max"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    key_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    key_prefix: Mapped[str] = mapped_column(String(16), nullable=False)
    max_uses: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    uses_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
