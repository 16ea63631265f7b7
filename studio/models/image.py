"""
Image Models
Image metadata records and their ordered links to wardrobe items.
"""

from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from studio.core.database import Base


class ImageSource:
    UPLOAD = "upload"
    AI_GENERATED = "ai_generated"


class ImageLinkType:
    ORIGINAL = "original"
    PRODUCT_SHOT = "product_shot"


class Image(Base):
    """Stored image metadata. Immutable once created."""

    __tablename__ = "images"

    id = Column(String, primary_key=True)  # img_xxxx format
    owner_id = Column(String, nullable=False, index=True)

    storage_bucket = Column(String, default="media")
    storage_key = Column(String, nullable=False)
    mime_type = Column(String, default="image/jpeg")
    source = Column(String, default=ImageSource.UPLOAD)

    created_at = Column(DateTime, default=datetime.utcnow)


class ItemImageLink(Base):
    """
    Ordered image of a wardrobe item.

    A product_shot link, when present, sits at sort_order 0 and every other
    link of the item follows from 1 in its original relative order.
    """

    __tablename__ = "wardrobe_item_images"
    __table_args__ = (UniqueConstraint("item_id", "sort_order", name="uq_item_image_order"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    item_id = Column(String, ForeignKey("wardrobe_items.id"), nullable=False, index=True)
    image_id = Column(String, ForeignKey("images.id"), nullable=False)
    type = Column(String, default=ImageLinkType.ORIGINAL)
    sort_order = Column(Integer, default=0)

    image = relationship("Image")
    item = relationship("WardrobeItem", back_populates="image_links")
