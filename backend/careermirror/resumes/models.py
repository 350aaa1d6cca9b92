"""Resume model: generated documents plus the transcript that produced them."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import relationship

from ..database.base import Base


class Resume(Base):
    __tablename__ = "resumes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String(255), nullable=False, default="Untitled Resume")
    version = Column(Integer, nullable=False, default=1)
    professional_resume_data = Column(JSON, nullable=False)
    career_insights_data = Column(JSON, nullable=False)
    conversation_history = Column(JSON, nullable=False, default=list)
    template = Column(String(50), nullable=False, default="classic")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
    )

    user = relationship("User", back_populates="resumes")

    __table_args__ = (Index("idx_resumes_owner_active", "user_id", "is_active"),)
