"""Gemini 기반 텍스트 탐지 / 캡션 추천 구현체"""

# pyright: reportMissingTypeStubs=false

import json
import logging
from typing import Any

from google import genai
from google.genai import types
from pydantic import TypeAdapter

from src.constants import FALLBACK_CAPTIONS, MAX_CAPTIONS
from src.schemas.editor import DetectedRegion
from src.services.vision.base import VisionError

logger = logging.getLogger(__name__)

DETECT_PROMPT = (
    "Find all text in this image. For each text element, provide the string and its "
    "bounding box in normalized coordinates [ymin, xmin, ymax, xmax] (0-1000). "
    "Return ONLY a JSON array of objects with keys 'text', 'ymin', 'xmin', 'ymax', 'xmax'."
)

CAPTION_PROMPT = "Suggest 3 creative slogans for this image. Return as a JSON array of strings."

DETECT_SCHEMA = types.Schema(
    type=types.Type.ARRAY,
    items=types.Schema(
        type=types.Type.OBJECT,
        properties={
            "text": types.Schema(type=types.Type.STRING),
            "ymin": types.Schema(type=types.Type.NUMBER),
            "xmin": types.Schema(type=types.Type.NUMBER),
            "ymax": types.Schema(type=types.Type.NUMBER),
            "xmax": types.Schema(type=types.Type.NUMBER),
        },
        required=["text", "ymin", "xmin", "ymax", "xmax"],
    ),
)

CAPTION_SCHEMA = types.Schema(
    type=types.Type.ARRAY,
    items=types.Schema(type=types.Type.STRING),
)

MAGIC_BYTES = {
    b"\xff\xd8\xff": "image/jpeg",
    b"\x89PNG": "image/png",
    b"GIF8": "image/gif",
    b"RIFF": "image/webp",
}

_regions_adapter = TypeAdapter(list[DetectedRegion])
_captions_adapter = TypeAdapter(list[str])


def sniff_mime_type(image_bytes: bytes) -> str:
    """매직 바이트로 MIME 타입 추정 (알 수 없으면 image/jpeg)"""
    for magic, mime in MAGIC_BYTES.items():
        if image_bytes.startswith(magic):
            return mime
    return "image/jpeg"


class GeminiVision:
    """Google Gemini API를 사용한 이미지 분석

    호출당 1회만 시도 (재시도 없음). 모든 실패는 로그만 남기고 대체 결과 반환.
    """

    def __init__(self, api_key: str, model: str) -> None:
        self._api_key = api_key
        self._model = model

    def detect_text(self, image_bytes: bytes) -> list[DetectedRegion]:
        try:
            raw = self._generate_json(image_bytes, DETECT_PROMPT, DETECT_SCHEMA)
            regions = _regions_adapter.validate_python(raw)
        except Exception as e:
            logger.error(f"텍스트 탐지 실패: {e}")
            return []

        logger.info(f"텍스트 탐지 완료: {len(regions)}개 영역")
        return regions

    def suggest_captions(self, image_bytes: bytes) -> list[str]:
        try:
            raw = self._generate_json(image_bytes, CAPTION_PROMPT, CAPTION_SCHEMA)
            captions = _captions_adapter.validate_python(raw)
        except Exception as e:
            logger.warning(f"캡션 추천 실패: {e}")
            return list(FALLBACK_CAPTIONS)

        return captions[:MAX_CAPTIONS]

    def _generate_json(self, image_bytes: bytes, prompt: str, schema: types.Schema) -> Any:
        """
        Raises:
            VisionError: API 키 누락, 빈 응답, JSON 파싱 실패
        """
        if not self._api_key:
            raise VisionError("GEMINI_API_KEY가 설정되지 않았습니다")

        client = genai.Client(api_key=self._api_key)
        response = client.models.generate_content(
            model=self._model,
            contents=[
                types.Part.from_bytes(data=image_bytes, mime_type=sniff_mime_type(image_bytes)),
                prompt,
            ],
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=schema,
            ),
        )

        if not response.text:
            raise VisionError("빈 응답")

        try:
            return json.loads(response.text)
        except json.JSONDecodeError as e:
            raise VisionError(f"JSON 파싱 실패: {e}") from e
