"""Vision Protocol

교체 가능한 AI 협력자(텍스트 탐지 + 캡션 추천) 인터페이스 정의.
구현체는 실패를 예외로 올리지 않고 빈/기본 결과로 대체한다.
"""

from typing import Protocol

from src.schemas.editor import DetectedRegion


class VisionError(Exception):
    pass


class VisionAssistant(Protocol):
    """이미지 분석 인터페이스

    구현체:
    - GeminiVision: Google Gemini API
    """

    def detect_text(self, image_bytes: bytes) -> list[DetectedRegion]:
        """이미지의 텍스트 영역 탐지

        Returns:
            list[DetectedRegion]: 탐지 순서대로의 영역 (normalized 0-1000 좌표).
            호출 실패 또는 응답 형식 오류 시 빈 리스트.
        """
        ...

    def suggest_captions(self, image_bytes: bytes) -> list[str]:
        """이미지에 어울리는 짧은 문구 추천

        Returns:
            list[str]: 최대 3개. 실패 시 기본 문구 리스트.
        """
        ...
