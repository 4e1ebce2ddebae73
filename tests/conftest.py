import io
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image as PILImage

from imageshare.core.config import Settings, get_settings
from imageshare.core.rate_limiter import limiter
from imageshare.core.storage import DeletionScheduler, get_scheduler
from imageshare.main import app

MODEL_TAG = 0x0110
SOFTWARE_TAG = 0x0131


def make_image(image_format: str = "JPEG", model: str | None = None, software: str | None = None) -> bytes:
    """Build a small image, optionally carrying camera EXIF tags."""
    img = PILImage.new("RGB", (32, 24), color=(126, 87, 194))
    exif = PILImage.Exif()
    if model:
        exif[MODEL_TAG] = model
    if software:
        exif[SOFTWARE_TAG] = software
    buffer = io.BytesIO()
    if model or software:
        img.save(buffer, format=image_format, exif=exif)
    else:
        img.save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        domain="share.example.com",
        upload_dir=tmp_path / "uploads",
        rate_limit_file=tmp_path / "rateLimitReset.txt",
        plausible_domain=None,
        imgur_client_id=None,
        external_dir=None,
    )


@pytest.fixture
def scheduler():
    scheduler = DeletionScheduler()
    yield scheduler
    scheduler.cancel_all()


@pytest.fixture
def client(settings: Settings, scheduler: DeletionScheduler):
    limiter.reset()
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def anyio_backend():
    return "asyncio"
