import tempfile
from collections.abc import Generator
from io import BytesIO
from pathlib import Path

import fakeredis
import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from src.infra.redis import set_redis
from src.infra.storage import set_storage
from src.infra.storage.local import LocalStorage
from src.main import app
from src.schemas.editor import DetectedRegion
from src.services.vision import set_vision


def make_test_image(
    width: int = 200,
    height: int = 200,
    fmt: str = "PNG",
    color: tuple[int, int, int] | str = "white",
) -> BytesIO:
    """테스트용 실제 이미지 바이트 생성 (기본 PNG: 픽셀 비교 가능)"""
    img = Image.new("RGB", (width, height), color=color)
    buf = BytesIO()
    img.save(buf, format=fmt)
    buf.seek(0)
    return buf


def make_raster(
    width: int = 100, height: int = 100, color: tuple[int, int, int] = (255, 255, 255)
) -> np.ndarray:
    """(H, W, 3) RGB 단색 raster"""
    raster = np.zeros((height, width, 3), dtype=np.uint8)
    raster[:, :] = color
    return raster


def decode_png(content: bytes) -> np.ndarray:
    with Image.open(BytesIO(content)) as img:
        return np.array(img.convert("RGB"))


class FakeVision:
    """결정적 VisionAssistant (호출 횟수 기록)"""

    def __init__(
        self,
        regions: list[DetectedRegion] | None = None,
        captions: list[str] | None = None,
        detect_error: Exception | None = None,
    ) -> None:
        self.regions = regions or []
        self.captions = captions if captions is not None else ["Sale", "Shop", "Now"]
        self.detect_error = detect_error
        self.detect_calls = 0
        self.caption_calls = 0

    def detect_text(self, image_bytes: bytes) -> list[DetectedRegion]:
        self.detect_calls += 1
        if self.detect_error is not None:
            raise self.detect_error
        return list(self.regions)

    def suggest_captions(self, image_bytes: bytes) -> list[str]:
        self.caption_calls += 1
        return list(self.captions)


@pytest.fixture
def temp_upload_dir() -> Generator[Path, None, None]:
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def local_storage(temp_upload_dir: Path) -> LocalStorage:
    return LocalStorage(base_dir=temp_upload_dir, base_url="/static")


@pytest.fixture
def fake_redis() -> Generator[fakeredis.FakeRedis, None, None]:
    r = fakeredis.FakeRedis(decode_responses=True)
    set_redis(r)
    yield r
    set_redis(None)


@pytest.fixture
def storage(temp_upload_dir: Path) -> Generator[LocalStorage, None, None]:
    storage = LocalStorage(base_dir=temp_upload_dir, base_url="http://localhost:8000/static")
    set_storage(storage)
    yield storage
    set_storage(None)


@pytest.fixture
def fake_vision() -> Generator[FakeVision, None, None]:
    vision = FakeVision(
        regions=[DetectedRegion(text="SALE", xmin=100, ymin=200, xmax=300, ymax=260)]
    )
    set_vision(vision)
    yield vision
    set_vision(None)


@pytest.fixture
def client(
    storage: LocalStorage, fake_redis: fakeredis.FakeRedis, fake_vision: FakeVision
) -> Generator[TestClient, None, None]:
    yield TestClient(app)


@pytest.fixture
def session_id(client: TestClient) -> str:
    response = client.post(
        "/sessions",
        files={"file": ("test.png", make_test_image(), "image/png")},
    )
    return response.json()["sessionId"]
