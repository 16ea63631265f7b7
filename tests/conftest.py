"""
Shared fixtures: in-memory database, local media storage and a recording
stand-in for the model gateway.
"""

import asyncio
import uuid
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from studio.core.config import settings
from studio.core.database import Base
from studio.models import (
    Image,
    ImageLinkType,
    ImageSource,
    ItemImageLink,
    Job,
    JobStatus,
    Outfit,
    UserSettings,
    WardrobeCategory,
    WardrobeItem,
    WardrobeSubcategory,
)
from studio.services.gemini_image import ResponseType
from studio.services.media import MediaStore
from studio.services.storage import StorageService
from studio.workers.base import ProcessorContext
from studio.workers.dispatcher import JobDispatcher

OWNER = "user_owner"
OTHER = "user_other"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 32


class FakeGateway:
    """Records every generate() call and replays queued responses."""

    def __init__(self, responses=None):
        self.calls = []
        self.responses = list(responses or [])

    def queue(self, *responses):
        self.responses.extend(responses)

    async def generate(self, prompt, images=None, model=None, response_type=ResponseType.IMAGE):
        self.calls.append(SimpleNamespace(
            prompt=prompt,
            images=list(images or []),
            model=model,
            response_type=response_type,
        ))
        await asyncio.sleep(0)
        if self.responses:
            response = self.responses.pop(0)
        else:
            response = PNG_BYTES if response_type == ResponseType.IMAGE else '{"attributes": []}'
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "USE_GCS", False)
    monkeypatch.setattr(settings, "USE_LOCAL_STORAGE", True)
    monkeypatch.setattr(settings, "LOCAL_STORAGE_PATH", str(tmp_path / "media"))
    monkeypatch.setattr(settings, "JWT_SECRET", "test-secret")
    return settings


@pytest.fixture
def engine():
    import studio.models  # noqa: F401

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def storage():
    return StorageService()


@pytest.fixture
def media(db, storage):
    return MediaStore(db, storage)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def ctx(db, gateway, media):
    return ProcessorContext(
        db=db,
        owner_id=OWNER,
        job_id="job_test",
        gateway=gateway,
        media=media,
        settings=settings,
    )


@pytest.fixture
def dispatcher(db, gateway, media):
    return JobDispatcher(db, gateway=gateway, media=media)


@pytest.fixture
def make_image(db, storage):
    def _make(owner_id=OWNER, data=JPEG_BYTES, image_id=None, mime_type="image/jpeg"):
        image_id = image_id or f"img_{uuid.uuid4().hex[:12]}"
        key = f"{owner_id}/uploads/{image_id}.jpg"
        path = storage.base_path / key
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        image = Image(
            id=image_id,
            owner_id=owner_id,
            storage_key=key,
            mime_type=mime_type,
            source=ImageSource.UPLOAD,
        )
        db.add(image)
        db.commit()
        return image
    return _make


@pytest.fixture
def make_item(db, make_image):
    def _make(owner_id=OWNER, image_count=1, product_shot=False, title=None):
        item = WardrobeItem(id=f"item_{uuid.uuid4().hex[:8]}", owner_id=owner_id, title=title)
        db.add(item)
        db.flush()
        order = 0
        if product_shot:
            db.add(ItemImageLink(
                item_id=item.id,
                image_id=make_image(owner_id).id,
                type=ImageLinkType.PRODUCT_SHOT,
                sort_order=order,
            ))
            order += 1
        for _ in range(image_count):
            db.add(ItemImageLink(
                item_id=item.id,
                image_id=make_image(owner_id).id,
                type=ImageLinkType.ORIGINAL,
                sort_order=order,
            ))
            order += 1
        db.commit()
        db.refresh(item)
        return item
    return _make


@pytest.fixture
def make_job(db):
    def _make(job_type, input, owner_id=OWNER, status=JobStatus.QUEUED):
        job = Job(
            id=f"job_{uuid.uuid4().hex[:12]}",
            job_type=job_type,
            owner_id=owner_id,
            input=input,
            status=status,
        )
        db.add(job)
        db.commit()
        return job
    return _make


@pytest.fixture
def make_outfit(db):
    def _make(owner_id=OWNER):
        outfit = Outfit(id=f"outfit_{uuid.uuid4().hex[:8]}", owner_id=owner_id, title="Weekend")
        db.add(outfit)
        db.commit()
        return outfit
    return _make


@pytest.fixture
def set_pointers(db):
    def _set(owner_id=OWNER, headshot=None, body_shot=None, model=None):
        row = db.query(UserSettings).filter(UserSettings.user_id == owner_id).first()
        if row is None:
            row = UserSettings(user_id=owner_id)
            db.add(row)
        row.current_headshot_image_id = headshot
        row.current_body_shot_image_id = body_shot
        row.ai_model_preference = model
        db.commit()
        return row
    return _set


@pytest.fixture
def categories(db):
    tops = WardrobeCategory(id="cat_tops", name="Tops", sort_order=1)
    bottoms = WardrobeCategory(id="cat_bottoms", name="Bottoms", sort_order=2)
    db.add_all([tops, bottoms])
    db.flush()
    db.add_all([
        WardrobeSubcategory(id="sub_tshirt", category_id=tops.id, name="T-Shirt", sort_order=1),
        WardrobeSubcategory(id="sub_blouse", category_id=tops.id, name="Blouse", sort_order=2),
        WardrobeSubcategory(id="sub_jeans", category_id=bottoms.id, name="Jeans", sort_order=1),
    ])
    db.commit()
    return {"tops": tops, "bottoms": bottoms}
