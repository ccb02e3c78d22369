"""좌표 변환 + 배경색 샘플링 (순수 함수)

normalized [0, 1000]과 percent [0, 100]은 별개의 단위계로 다룬다.
두 단위가 우연히 10배 관계라도 변환은 항상 이름 있는 함수를 거친다.
"""

import math

import numpy as np

from src.constants import Units
from src.schemas.editor import DetectedRegion, PixelRect

DEFAULT_SAMPLE_MARGIN = 5


def round_half_up(value: float) -> int:
    """0.5는 올림 (Python round()의 banker's rounding 회피)"""
    return math.floor(value + 0.5)


def normalized_to_pixels(value: float, dimension: float) -> float:
    return value * dimension / Units.NORMALIZED_SCALE


def normalized_to_percent(value: float) -> float:
    return value * Units.PERCENT_SCALE / Units.NORMALIZED_SCALE


def percent_to_pixels(value: float, dimension: float) -> float:
    return value * dimension / Units.PERCENT_SCALE


def pixels_to_percent(value: float, dimension: float) -> float:
    if dimension <= 0:
        return 0.0
    return value * Units.PERCENT_SCALE / dimension


def font_size_to_pixels(font_size: float, render_height: float) -> float:
    """normalized font_size → 실제 px (렌더 높이 기준)

    export와 미리보기 모두 이 함수를 사용해야 1:1로 일치한다.
    """
    return font_size * render_height / Units.NORMALIZED_SCALE


def font_size_from_region(region: DetectedRegion) -> int:
    """탐지 박스 높이의 80%를 normalized font_size로 사용"""
    return round_half_up(region.height * Units.FONT_SIZE_RATIO)


def to_pixel_rect(region: DetectedRegion, image_width: int, image_height: int) -> PixelRect:
    """normalized 박스 → 픽셀 사각형

    역전된 박스(max < min)는 크기 0으로 클램핑.
    """
    return PixelRect(
        x=normalized_to_pixels(region.xmin, image_width),
        y=normalized_to_pixels(region.ymin, image_height),
        w=normalized_to_pixels(region.width, image_width),
        h=normalized_to_pixels(region.height, image_height),
    )


def drag_to_percent(
    pointer_x: float,
    pointer_y: float,
    offset_x: float,
    offset_y: float,
    container_width: float,
    container_height: float,
) -> tuple[float, float]:
    """드래그 포인터 위치 → 레이어 좌상단 percent 좌표"""
    return (
        pixels_to_percent(pointer_x - offset_x, container_width),
        pixels_to_percent(pointer_y - offset_y, container_height),
    )


def _sample_points(rect: PixelRect, margin: float) -> list[tuple[float, float]]:
    return [
        (rect.x - margin, rect.y - margin),
        (rect.x2 + margin, rect.y - margin),
        (rect.x - margin, rect.y2 + margin),
        (rect.x2 + margin, rect.y2 + margin),
    ]


def rgb_to_hex(r: int, g: int, b: int) -> str:
    return f"#{r:02x}{g:02x}{b:02x}"


def hex_to_rgb(color: str) -> tuple[int, int, int]:
    value = color.lstrip("#")
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))


def estimate_background_color(
    raster: np.ndarray, rect: PixelRect, margin: float = DEFAULT_SAMPLE_MARGIN
) -> str:
    """박스 네 모서리 바깥 지점의 평균색 (#rrggbb)

    raster는 (H, W, 3) RGB. 샘플 지점은 이미지 경계 안으로 클램핑한 뒤
    소수점 이하를 버린다 (x=95.6 → 95번 열).
    단순 평균이라 단색/완만한 그라데이션 배경에 적합하고,
    경계가 뚜렷하거나 텍스처가 있는 배경은 뭉개진다.
    """
    h, w = raster.shape[:2]
    samples: list[np.ndarray] = []

    for px, py in _sample_points(rect, margin):
        sx = math.floor(min(w - 1, max(0, px)))
        sy = math.floor(min(h - 1, max(0, py)))
        samples.append(raster[sy, sx, :3].astype(np.int64))

    total = np.sum(samples, axis=0)
    r, g, b = (round_half_up(int(c) / len(samples)) for c in total)
    return rgb_to_hex(r, g, b)
