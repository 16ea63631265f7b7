"""
Attribute Models
Attribute definitions, their known values, and per-entity attribute rows.
"""

from datetime import datetime
from sqlalchemy import Column, String, Integer, Float, DateTime, ForeignKey

from studio.core.database import Base


class AttributeSource:
    USER = "user"
    AI = "ai"


class AttributeDefinition(Base):
    """An attribute key such as color, material or season."""

    __tablename__ = "attribute_definitions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=False)


class AttributeValue(Base):
    """A known value for one definition."""

    __tablename__ = "attribute_values"

    id = Column(Integer, primary_key=True, autoincrement=True)
    definition_id = Column(Integer, ForeignKey("attribute_definitions.id"), nullable=False, index=True)
    value = Column(String, nullable=False)


class EntityAttribute(Base):
    """
    One attribute value attached to an entity.
    Several rows per (entity, definition) are allowed for multi-valued keys.
    """

    __tablename__ = "entity_attributes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    entity_type = Column(String, nullable=False)
    entity_id = Column(String, nullable=False, index=True)
    definition_id = Column(Integer, ForeignKey("attribute_definitions.id"), nullable=False)
    value_id = Column(Integer, ForeignKey("attribute_values.id"), nullable=True)
    raw_value = Column(String, nullable=True)
    confidence = Column(Float, nullable=True)  # null for user-sourced rows
    source = Column(String, default=AttributeSource.USER)

    created_at = Column(DateTime, default=datetime.utcnow)
