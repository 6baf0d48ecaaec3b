"""Resource model for saved vault items."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, JSON, String, Text
from sqlalchemy.orm import relationship

from database import Base


class Resource(Base):
    """Saved article, video, photo or note owned by a single user.

    ``created_at`` is written by the store adapter rather than the server so
    that in-memory ordering and the persisted value agree.
    """

    __tablename__ = "resources"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    url = Column(String, nullable=True)
    type = Column(String, nullable=False, default="article", index=True)
    tags = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=False, default="")
    media_url = Column(String, nullable=True)
    url_preview = Column(JSON, nullable=True)
    reminder_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    user = relationship("User", back_populates="resources")
