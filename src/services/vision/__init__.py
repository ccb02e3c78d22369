"""Vision 모듈

사용법:
    from src.services.vision import get_vision

    vision = get_vision()
    regions = vision.detect_text(image_bytes)
    captions = vision.suggest_captions(image_bytes)

백엔드 선택 (.env VISION_PROVIDER):
    - "gemini": Google Gemini API (기본값)
"""

from src.config import get_settings
from src.services.vision.base import VisionAssistant, VisionError
from src.services.vision.gemini import GeminiVision

__all__ = ["VisionAssistant", "VisionError", "get_vision", "set_vision"]

_vision: VisionAssistant | None = None


def get_vision() -> VisionAssistant:
    """설정에 따라 vision 백엔드 반환"""
    global _vision
    if _vision is None:
        settings = get_settings()
        if settings.vision_provider == "gemini":
            _vision = GeminiVision(
                api_key=settings.gemini_api_key,
                model=settings.gemini_model,
            )
        else:
            raise ValueError(f"Unknown vision provider: {settings.vision_provider!r}")
    return _vision


def set_vision(vision: VisionAssistant | None) -> None:
    """vision 백엔드 설정 (테스트용)"""
    global _vision
    _vision = vision
