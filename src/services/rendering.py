"""합성 렌더링 서비스 (base 이미지 + 텍스트 레이어 → 최종 이미지)"""

import io
import logging
from functools import lru_cache
from pathlib import Path
from typing import cast

from PIL import Image, ImageDraw, ImageFont, ImageOps

from src.config import get_settings
from src.schemas.editor import FontWeight, LayerPreview, TextLayer
from src.services.geometry import (
    font_size_to_pixels,
    hex_to_rgb,
    percent_to_pixels,
    round_half_up,
)

logger = logging.getLogger(__name__)

# font_dir에 해당 폰트가 없을 때 사용 (CJK 우선)
FALLBACK_FONT_PATHS = [
    "/usr/share/fonts/opentype/noto/NotoSansCJK-Regular.ttc",
    "/usr/share/fonts/noto-cjk/NotoSansCJK-Regular.ttc",
    "/System/Library/Fonts/PingFang.ttc",
    "/System/Library/Fonts/Supplemental/Arial.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    "C:/Windows/Fonts/msjh.ttc",
    "C:/Windows/Fonts/arial.ttf",
]

FONT_EXTENSIONS = (".ttf", ".otf", ".ttc")

WEIGHT_NAMES: dict[FontWeight, str] = {
    FontWeight.LIGHT: "Light",
    FontWeight.REGULAR: "Regular",
    FontWeight.SEMIBOLD: "SemiBold",
    FontWeight.BOLD: "Bold",
    FontWeight.BLACK: "Black",
}


class RenderingError(Exception):
    pass


def font_file_candidates(font_dir: Path, family: str, weight: FontWeight) -> list[Path]:
    """폰트 파일 후보 (굵기 일치 → Regular → 패밀리명 단독 순)

    예: "Noto Sans TC" + 700 → fonts/NotoSansTC-Bold.ttf
    """
    stem = family.replace(" ", "")
    names = [f"{stem}-{WEIGHT_NAMES[weight]}", f"{stem}-Regular", stem]
    return [font_dir / f"{name}{ext}" for name in names for ext in FONT_EXTENSIONS]


@lru_cache(maxsize=64)
def _get_font(family: str, weight: FontWeight, size: float) -> ImageFont.FreeTypeFont:
    font_dir = Path(get_settings().font_dir)
    candidates = [
        *font_file_candidates(font_dir, family, weight),
        *(Path(p) for p in FALLBACK_FONT_PATHS),
    ]

    for font_path in candidates:
        if font_path.exists():
            try:
                return ImageFont.truetype(str(font_path), size)
            except Exception:
                continue

    logger.warning(f"폰트를 찾을 수 없음: {family} ({weight}), 기본 폰트 사용")
    return cast(ImageFont.FreeTypeFont, ImageFont.load_default(size=size))


def _decode_image(image_bytes: bytes) -> Image.Image:
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            return ImageOps.exif_transpose(img).convert("RGBA")
    except Exception as e:
        raise RenderingError("이미지 디코딩 실패") from e


def _draw_layer(base: Image.Image, layer: TextLayer) -> Image.Image:
    """레이어 하나를 별도 투명 오버레이에 그려 합성

    opacity는 해당 오버레이의 alpha에만 적용되므로 다음 레이어로 번지지 않는다.
    """
    width, height = base.size
    left = percent_to_pixels(layer.x, width)
    top = percent_to_pixels(layer.y, height)
    size = font_size_to_pixels(layer.font_size, height)
    font = _get_font(layer.font_family, layer.font_weight, size)

    mask = Image.new("L", base.size, 0)
    ImageDraw.Draw(mask).text((left, top), layer.text, font=font, fill=255)

    if layer.opacity < 1.0:
        mask = mask.point(lambda v: round_half_up(v * layer.opacity))

    overlay = Image.new("RGBA", base.size, (*hex_to_rgb(layer.color), 0))
    overlay.putalpha(mask)
    return Image.alpha_composite(base, overlay)


def render_composite(image_bytes: bytes, layers: list[TextLayer]) -> Image.Image:
    """base 이미지 위에 레이어를 리스트 순서대로 합성 (뒤 레이어가 위)

    Raises:
        RenderingError: base 이미지 디코딩 실패
    """
    result = _decode_image(image_bytes)

    for layer in layers:
        if not layer.text or layer.opacity <= 0 or layer.font_size <= 0:
            continue
        result = _draw_layer(result, layer)

    logger.info(f"렌더링 완료: {len(layers)}개 레이어")
    return result


def export_png(image_bytes: bytes, layers: list[TextLayer]) -> bytes:
    """합성 결과를 PNG(무손실)로 인코딩"""
    composite = render_composite(image_bytes, layers)
    buffer = io.BytesIO()
    composite.save(buffer, format="PNG")
    return buffer.getvalue()


def build_preview(
    layers: list[TextLayer], display_width: float, display_height: float
) -> list[LayerPreview]:
    """현재 표시 크기 기준 레이어 배치 (export와 같은 공식)"""
    return [
        LayerPreview(
            id=layer.id,
            left_px=percent_to_pixels(layer.x, display_width),
            top_px=percent_to_pixels(layer.y, display_height),
            font_size_px=font_size_to_pixels(layer.font_size, display_height),
            opacity=layer.opacity,
        )
        for layer in layers
    ]
