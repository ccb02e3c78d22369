"""에디터 데이터 모델

Detection → Erase → Layer 편집 → Export 전체에서 사용하는 공통 스키마.

좌표 단위는 두 가지로 분리한다:
- normalized: [0, 1000] (detector 박스 좌표, font_size)
- percent: [0, 100] (레이어 위치, 렌더링 컨테이너 기준)
"""

import math
from enum import IntEnum
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from src.constants import LayerDefaults, Units
from src.schemas.base import BaseSchema

HEX_COLOR_PATTERN = r"^#[0-9a-fA-F]{6}$"
BACKGROUND_COLOR_PATTERN = r"^(transparent|#[0-9a-fA-F]{6})$"

# 라틴 + CJK 글리프 지원 폰트
FontFamily = Literal[
    "Inter",
    "Noto Sans TC",
    "Noto Serif TC",
    "Ma Shan Zheng",
    "Zhi Mang Xing",
    "Long Cang",
    "Playfair Display",
    "Roboto Mono",
    "Bebas Neue",
    "Montserrat",
    "Pacifico",
    "Lora",
    "Caveat",
    "Oswald",
    "Dancing Script",
    "Anton",
]


class FontWeight(IntEnum):
    LIGHT = 300
    REGULAR = 400
    SEMIBOLD = 600
    BOLD = 700
    BLACK = 900


class DetectedRegion(BaseModel):
    """AI가 탐지한 텍스트 영역 (normalized 좌표)

    유효성:
    - 모든 좌표는 [0, 1000]으로 클램핑
    - xmin > xmax 같은 역전 박스는 그대로 허용 (크기 계산 시 0으로 처리)
    """

    text: str
    xmin: float
    ymin: float
    xmax: float
    ymax: float

    @field_validator("xmin", "ymin", "xmax", "ymax")
    @classmethod
    def clamp_coordinate(cls, value: float) -> float:
        if math.isnan(value) or math.isinf(value):
            raise ValueError("Coordinate is NaN or Inf")
        return min(float(Units.NORMALIZED_SCALE), max(0.0, value))

    @property
    def width(self) -> float:
        return max(0.0, self.xmax - self.xmin)

    @property
    def height(self) -> float:
        return max(0.0, self.ymax - self.ymin)


class PixelRect(BaseModel):
    """픽셀 좌표 사각형 (w, h >= 0)"""

    x: float
    y: float
    w: float
    h: float

    @property
    def x2(self) -> float:
        return self.x + self.w

    @property
    def y2(self) -> float:
        return self.y + self.h


class TextLayer(BaseSchema):
    """편집 가능한 텍스트 오버레이

    background_color, padding, mask_width, mask_height는 예약 필드.
    원본 텍스트는 이미 base 이미지에서 지워졌으므로 렌더링에 사용하지 않는다.
    """

    id: str
    text: str
    x: float  # percent
    y: float  # percent
    font_size: int = Field(ge=0)  # normalized
    color: str = Field(default=LayerDefaults.COLOR, pattern=HEX_COLOR_PATTERN)
    background_color: str = Field(
        default=LayerDefaults.BACKGROUND_COLOR, pattern=BACKGROUND_COLOR_PATTERN
    )
    padding: int = 0
    font_family: FontFamily = LayerDefaults.FONT_FAMILY
    font_weight: FontWeight = FontWeight.SEMIBOLD
    opacity: float = Field(default=1.0, ge=0.0, le=1.0)
    mask_width: float | None = None
    mask_height: float | None = None


class LayerCreate(BaseSchema):
    """수동 레이어 추가 요청"""

    text: str = LayerDefaults.TEXT
    x: float = LayerDefaults.X
    y: float = LayerDefaults.Y


class LayerUpdate(BaseSchema):
    """레이어 부분 수정 요청 (지정한 필드만 반영)"""

    text: str | None = None
    x: float | None = None
    y: float | None = None
    font_size: int | None = Field(default=None, ge=10, le=400)
    color: str | None = Field(default=None, pattern=HEX_COLOR_PATTERN)
    background_color: str | None = Field(default=None, pattern=BACKGROUND_COLOR_PATTERN)
    padding: int | None = None
    font_family: FontFamily | None = None
    font_weight: FontWeight | None = None
    opacity: float | None = Field(default=None, ge=0.0, le=1.0)


class DragMove(BaseSchema):
    """드래그 이동 요청 (모두 화면 px)

    pointer: 컨테이너 좌상단 기준 포인터 위치
    offset: 드래그 시작 시 레이어 좌상단 기준 포인터 위치
    """

    pointer_x: float
    pointer_y: float
    offset_x: float = 0.0
    offset_y: float = 0.0
    container_width: float = Field(gt=0)
    container_height: float = Field(gt=0)


class LayerPreview(BaseSchema):
    """표시 크기 기준 레이어 배치 (export와 동일한 공식)"""

    id: str
    left_px: float
    top_px: float
    font_size_px: float
    opacity: float
