"""
Generation Pointers
Guarded access to a user's current headshot / body shot.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from studio.core.errors import NotFoundError
from studio.models import Image, UserSettings

logger = logging.getLogger(__name__)


class PointerStore:
    """Reads and writes the per-user pointer row. Writes are last-write-wins."""

    def __init__(self, db: Session, owner_id: str):
        self.db = db
        self.owner_id = owner_id

    def get(self) -> Optional[UserSettings]:
        return self.db.query(UserSettings).filter(UserSettings.user_id == self.owner_id).first()

    def _get_or_create(self) -> UserSettings:
        row = self.get()
        if row is None:
            row = UserSettings(user_id=self.owner_id)
            self.db.add(row)
        return row

    def _check_owned(self, image_id: str):
        image = self.db.query(Image).filter(Image.id == image_id).first()
        if not image or image.owner_id != self.owner_id:
            raise NotFoundError(f"Image not found: {image_id}")

    @property
    def current_headshot_image_id(self) -> Optional[str]:
        row = self.get()
        return row.current_headshot_image_id if row else None

    @property
    def current_body_shot_image_id(self) -> Optional[str]:
        row = self.get()
        return row.current_body_shot_image_id if row else None

    @property
    def model_preference(self) -> Optional[str]:
        row = self.get()
        return row.ai_model_preference if row else None

    def set_current_headshot(self, image_id: str):
        self._check_owned(image_id)
        self._get_or_create().current_headshot_image_id = image_id
        self.db.flush()
        logger.info(f"[Pointers] {self.owner_id} headshot -> {image_id}")

    def set_current_body_shot(self, image_id: str):
        self._check_owned(image_id)
        self._get_or_create().current_body_shot_image_id = image_id
        self.db.flush()
        logger.info(f"[Pointers] {self.owner_id} body shot -> {image_id}")
