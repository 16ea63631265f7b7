"""
Wardrobe Models
Wardrobe items and the canonical category lists used by tagging.
"""

from datetime import datetime
from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from studio.core.database import Base


class WardrobeCategory(Base):
    """Canonical category (Tops, Bottoms, ...)."""

    __tablename__ = "wardrobe_categories"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    sort_order = Column(Integer, default=0)

    subcategories = relationship("WardrobeSubcategory", back_populates="category")


class WardrobeSubcategory(Base):
    """Canonical subcategory, scoped to one category."""

    __tablename__ = "wardrobe_subcategories"

    id = Column(String, primary_key=True)
    category_id = Column(String, ForeignKey("wardrobe_categories.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    sort_order = Column(Integer, default=0)

    category = relationship("WardrobeCategory", back_populates="subcategories")


class WardrobeItem(Base):
    """A garment owned by a user."""

    __tablename__ = "wardrobe_items"

    id = Column(String, primary_key=True)
    owner_id = Column(String, nullable=False, index=True)

    title = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    category_id = Column(String, ForeignKey("wardrobe_categories.id"), nullable=True)
    subcategory_id = Column(String, ForeignKey("wardrobe_subcategories.id"), nullable=True)
    color_primary = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    image_links = relationship(
        "ItemImageLink",
        back_populates="item",
        order_by="ItemImageLink.sort_order",
        cascade="all, delete-orphan",
    )
