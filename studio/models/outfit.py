"""
Outfit Models
Outfits and their append-only render history.
"""

from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from studio.core.database import Base


class Outfit(Base):
    """A user's outfit. cover_image_id points at the newest render."""

    __tablename__ = "outfits"

    id = Column(String, primary_key=True)
    owner_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=True)
    cover_image_id = Column(String, ForeignKey("images.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    renders = relationship(
        "OutfitRender",
        back_populates="outfit",
        order_by="OutfitRender.created_at",
        cascade="all, delete-orphan",
    )


class OutfitRender(Base):
    """One render attempt. Rows are never updated."""

    __tablename__ = "outfit_renders"

    id = Column(String, primary_key=True)  # rnd_xxxx format
    outfit_id = Column(String, ForeignKey("outfits.id"), nullable=False, index=True)
    image_id = Column(String, ForeignKey("images.id"), nullable=False)
    prompt = Column(Text, nullable=True)
    settings = Column(JSON, default=dict)
    status = Column(String, default="succeeded")

    created_at = Column(DateTime, default=datetime.utcnow)

    outfit = relationship("Outfit", back_populates="renders")
