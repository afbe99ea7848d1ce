from sqlalchemy import Column, String, Text, Integer, Boolean, ForeignKey, UUID, JSON, CheckConstraint
from sqlalchemy.orm import relationship

from app.db.base import BaseModel


class Tour(BaseModel):
    __tablename__ = "tours"
    __table_args__ = (
        CheckConstraint("views >= 0", name="ck_tours_views_non_negative"),
        CheckConstraint("clicks >= 0", name="ck_tours_clicks_non_negative"),
    )

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    creator_id = Column(UUID(as_uuid=True), ForeignKey("users.uuid", ondelete="CASCADE"), index=True, nullable=False)
    # Steps with their annotations are stored as one ordered JSON document
    steps = Column(JSON, nullable=False, default=list)
    is_public = Column(Boolean, nullable=False, default=False)
    # Unique constraint is the backstop against slug collisions; NULLs are not compared
    share_slug = Column(String(32), unique=True, index=True, nullable=True)
    views = Column(Integer, nullable=False, default=0)
    clicks = Column(Integer, nullable=False, default=0)

    # Relationships
    creator = relationship("User", back_populates="tours")
