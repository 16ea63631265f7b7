"""
User Settings Model
Per-user generation pointers and model preference.
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime

from studio.core.database import Base


class UserSettings(Base):
    """
    Single-valued, last-write-wins generation pointers for one user.

    current_headshot_image_id and current_body_shot_image_id are written only
    through studio.services.pointers.PointerStore.
    """

    __tablename__ = "user_settings"

    user_id = Column(String, primary_key=True)

    current_headshot_image_id = Column(String, nullable=True)
    current_body_shot_image_id = Column(String, nullable=True)
    ai_model_preference = Column(String, nullable=True)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
