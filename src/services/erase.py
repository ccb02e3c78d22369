"""Erase 서비스: 탐지된 텍스트를 base 이미지에서 지우고 편집 레이어 생성

각 영역의 바깥 모서리 색을 샘플링해 단색으로 덧칠한다 (파괴적, 복구 불가).
모든 영역은 하나의 raster 위에서 입력 순서대로 처리되므로,
앞서 덧칠한 영역이 뒤 영역의 샘플링 지점에 걸리면 덧칠된 색이 샘플링된다.

실패는 best-effort: 디코딩/인코딩 실패 시 원본 이미지 + 빈 레이어 반환.
"""

import logging
import uuid

import cv2
import numpy as np
from pydantic import BaseModel

from src.config import get_settings
from src.constants import LayerDefaults, LayerId
from src.schemas.editor import DetectedRegion, FontWeight, PixelRect, TextLayer
from src.services.geometry import (
    estimate_background_color,
    font_size_from_region,
    hex_to_rgb,
    normalized_to_percent,
    round_half_up,
    to_pixel_rect,
)

logger = logging.getLogger(__name__)


class EraseResult(BaseModel):
    """Erase 결과

    erased=False면 image는 입력 바이트 그대로 (픽셀 동일).
    """

    image: bytes
    layers: list[TextLayer]
    erased: bool


def generate_layer_id() -> str:
    return f"{LayerId.PREFIX}{uuid.uuid4().hex[:8]}"


def decode_raster(image_bytes: bytes) -> np.ndarray | None:
    """이미지 바이트 → (H, W, 3) RGB raster (실패 시 None)"""
    buffer = np.frombuffer(image_bytes, dtype=np.uint8)
    if buffer.size == 0:
        return None

    bgr = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if bgr is None:
        return None

    return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)


def encode_jpeg(raster: np.ndarray, quality: int) -> bytes | None:
    ok, encoded = cv2.imencode(
        ".jpg", cv2.cvtColor(raster, cv2.COLOR_RGB2BGR), [cv2.IMWRITE_JPEG_QUALITY, quality]
    )
    if not ok:
        return None
    return encoded.tobytes()


def fill_rect(raster: np.ndarray, rect: PixelRect, color: str, bleed: float) -> None:
    """rect를 bleed만큼 사방으로 넓혀 단색으로 채움 (raster in-place, 경계 클리핑)"""
    h, w = raster.shape[:2]
    x1 = max(0, round_half_up(rect.x - bleed))
    y1 = max(0, round_half_up(rect.y - bleed))
    x2 = min(w, round_half_up(rect.x2 + bleed))
    y2 = min(h, round_half_up(rect.y2 + bleed))

    if x1 >= x2 or y1 >= y2:
        return

    cv2.rectangle(raster, (x1, y1), (x2 - 1, y2 - 1), hex_to_rgb(color), -1)


def build_layer(region: DetectedRegion) -> TextLayer:
    """탐지 영역 → 기본 스타일 텍스트 레이어

    위치는 normalized → percent 변환 (컨테이너가 이미지 비율을 유지한다는 전제).
    배경은 이미 base 이미지에 칠해졌으므로 레이어 배경은 투명.
    """
    return TextLayer(
        id=generate_layer_id(),
        text=region.text,
        x=normalized_to_percent(region.xmin),
        y=normalized_to_percent(region.ymin),
        font_size=font_size_from_region(region),
        color=LayerDefaults.COLOR,
        background_color=LayerDefaults.BACKGROUND_COLOR,
        padding=0,
        font_family=LayerDefaults.FONT_FAMILY,
        font_weight=FontWeight.SEMIBOLD,
        opacity=1.0,
    )


def erase_regions_on_raster(
    raster: np.ndarray,
    regions: list[DetectedRegion],
    margin: float,
    bleed: float,
) -> list[TextLayer]:
    """raster 위에서 영역을 순서대로 지우고 레이어 리스트 반환 (raster in-place)"""
    h, w = raster.shape[:2]
    layers: list[TextLayer] = []

    for region in regions:
        rect = to_pixel_rect(region, w, h)
        color = estimate_background_color(raster, rect, margin)
        fill_rect(raster, rect, color, bleed)
        layers.append(build_layer(region))

    return layers


def erase_text_regions(image_bytes: bytes, regions: list[DetectedRegion]) -> EraseResult:
    """텍스트 영역 제거 + 편집 레이어 생성

    Returns:
        EraseResult: 덧칠된 JPEG + 탐지 순서대로의 레이어.
        영역이 없거나 디코딩/인코딩 실패 시 원본 바이트 + 빈 레이어.
    """
    if not regions:
        return EraseResult(image=image_bytes, layers=[], erased=False)

    settings = get_settings()

    raster = decode_raster(image_bytes)
    if raster is None:
        logger.warning("이미지 디코딩 실패: 원본 이미지 유지")
        return EraseResult(image=image_bytes, layers=[], erased=False)

    layers = erase_regions_on_raster(raster, regions, settings.sample_margin, settings.bleed)

    encoded = encode_jpeg(raster, settings.jpeg_quality)
    if encoded is None:
        logger.warning("이미지 인코딩 실패: 원본 이미지 유지")
        return EraseResult(image=image_bytes, layers=[], erased=False)

    logger.info(f"Erase 완료: {len(layers)}개 영역")
    return EraseResult(image=encoded, layers=layers, erased=True)
