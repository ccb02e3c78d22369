"""Session 서비스: 편집 세션 상태 관리

세션 = 현재 base 이미지 + 텍스트 레이어 리스트 + 캡션 추천.
상태는 Redis에 JSON으로 저장하고, 이미지 바이트는 storage에 저장한다.

업로드마다 generation을 1씩 올린다. 분석(탐지 → erase → 캡션)은 시작 시점의
generation을 들고 있다가, 끝났을 때 세션 generation이 바뀌었으면 결과를 버린다.
(느린 탐지 응답이 새 업로드 상태를 덮어쓰는 것 방지)

NOTE: generation 확인과 저장 사이에 await가 없어야 한다.
      단일 이벤트 루프(프로세스 1개) 기준으로만 원자적이다.
"""

import asyncio
import json
import logging
import uuid
from datetime import UTC, datetime
from typing import Literal, cast

from fastapi import UploadFile
from pydantic import BaseModel

from src.constants import FALLBACK_CAPTIONS, TTL, LayerDefaults, RedisPrefix, SessionId
from src.infra.redis import get_redis
from src.infra.storage import get_storage
from src.schemas.base import BaseSchema
from src.schemas.editor import (
    DragMove,
    FontWeight,
    LayerCreate,
    LayerPreview,
    LayerUpdate,
    TextLayer,
)
from src.services.erase import erase_text_regions, generate_layer_id
from src.services.geometry import drag_to_percent
from src.services.rendering import build_preview, export_png
from src.services.vision import get_vision

logger = logging.getLogger(__name__)

SessionStatus = Literal["analyzing", "ready"]


class SessionMetadata(BaseModel):
    """Redis에 저장되는 세션 상태"""

    session_id: str
    generation: int
    status: SessionStatus
    image_path: str
    filename: str
    layers: list[TextLayer]
    suggestions: list[str]
    created_at: str
    updated_at: str


class SessionResponse(BaseSchema):
    session_id: str
    generation: int
    status: SessionStatus
    image_url: str
    filename: str
    layers: list[TextLayer]
    suggestions: list[str]
    created_at: str
    updated_at: str


class SessionNotFoundError(Exception):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"존재하지 않는 세션 ID: {session_id}")


class LayerNotFoundError(Exception):
    def __init__(self, layer_id: str):
        self.layer_id = layer_id
        super().__init__(f"존재하지 않는 레이어 ID: {layer_id}")


def _generate_session_id() -> str:
    return f"{SessionId.PREFIX}{uuid.uuid4().hex[:8]}"


def _now() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def _key(session_id: str) -> str:
    return f"{RedisPrefix.SESSION}:{session_id}"


def _load(session_id: str) -> SessionMetadata:
    """
    Raises:
        SessionNotFoundError: 형식 오류 또는 만료/미존재
    """
    if not SessionId.PATTERN.match(session_id):
        raise SessionNotFoundError(session_id)

    data = get_redis().get(_key(session_id))
    if data is None:
        raise SessionNotFoundError(session_id)

    return SessionMetadata.model_validate(json.loads(cast(str, data)))


def _save(metadata: SessionMetadata) -> None:
    metadata.updated_at = _now()
    get_redis().set(_key(metadata.session_id), metadata.model_dump_json(), ex=TTL.SESSION)


def _to_response(metadata: SessionMetadata) -> SessionResponse:
    return SessionResponse(
        session_id=metadata.session_id,
        generation=metadata.generation,
        status=metadata.status,
        image_url=get_storage().get_url(metadata.image_path),
        filename=metadata.filename,
        layers=metadata.layers,
        suggestions=metadata.suggestions,
        created_at=metadata.created_at,
        updated_at=metadata.updated_at,
    )


def _find_layer_index(metadata: SessionMetadata, layer_id: str) -> int:
    for i, layer in enumerate(metadata.layers):
        if layer.id == layer_id:
            return i
    raise LayerNotFoundError(layer_id)


async def create_session(file: UploadFile) -> SessionResponse:
    """업로드로 새 세션 생성 후 분석까지 수행"""
    storage = get_storage()
    session_id = _generate_session_id()

    path = await storage.save(file, subdir="original", filename=f"{session_id}_g1")

    created_at = _now()
    metadata = SessionMetadata(
        session_id=session_id,
        generation=1,
        status="analyzing",
        image_path=path,
        filename=file.filename or "unknown",
        layers=[],
        suggestions=[],
        created_at=created_at,
        updated_at=created_at,
    )
    _save(metadata)

    await analyze(session_id, metadata.generation, storage.read(path))
    return _to_response(_load(session_id))


async def replace_image(session_id: str, file: UploadFile) -> SessionResponse:
    """같은 세션에 새 이미지 업로드 (generation 증가, 레이어 초기화)

    Raises:
        SessionNotFoundError: 세션 없음
    """
    _load(session_id)
    storage = get_storage()
    path = await storage.save(file, subdir="original")

    metadata = _load(session_id)
    metadata.generation += 1
    metadata.status = "analyzing"
    metadata.image_path = path
    metadata.filename = file.filename or "unknown"
    metadata.layers = []
    metadata.suggestions = []
    _save(metadata)

    await analyze(session_id, metadata.generation, storage.read(path))
    return _to_response(_load(session_id))


async def analyze(session_id: str, generation: int, image_bytes: bytes) -> None:
    """탐지 → (영역이 있으면) erase → 캡션 추천, 결과는 generation이 같을 때만 반영

    탐지 실패는 영역 없음과 동일하게 처리하고, 캡션 추천은 탐지 결과와 무관하게 시도한다.
    """
    vision = get_vision()
    storage = get_storage()

    try:
        regions = await asyncio.to_thread(vision.detect_text, image_bytes)
    except Exception as e:
        logger.error(f"[{session_id}] 텍스트 탐지 실패: {e}")
        regions = []

    clean_path: str | None = None
    layers: list[TextLayer] | None = None
    if regions:
        try:
            result = await asyncio.to_thread(erase_text_regions, image_bytes, regions)
            if result.erased:
                clean_path = storage.save_bytes(
                    result.image,
                    subdir="clean",
                    filename=f"{session_id}_g{generation}",
                    ext=".jpg",
                )
            layers = result.layers
        except Exception as e:
            # 원본 이미지 유지, 레이어 없음
            logger.error(f"[{session_id}] Erase 실패: {e}")
            clean_path = None
            layers = []

    try:
        suggestions = await asyncio.to_thread(vision.suggest_captions, image_bytes)
    except Exception as e:
        logger.error(f"[{session_id}] 캡션 추천 실패: {e}")
        suggestions = list(FALLBACK_CAPTIONS)

    try:
        metadata = _load(session_id)
    except SessionNotFoundError:
        logger.warning(f"[{session_id}] 분석 중 세션 만료: 결과 폐기")
        metadata = None

    if metadata is None or metadata.generation != generation:
        if metadata is not None:
            logger.info(
                f"[{session_id}] 이전 업로드 분석 결과 폐기 "
                f"(generation {generation}, 현재 {metadata.generation})"
            )
        if clean_path:
            storage.delete(clean_path)
        return

    if clean_path:
        metadata.image_path = clean_path
    if layers is not None:
        metadata.layers = layers
    metadata.suggestions = suggestions
    metadata.status = "ready"
    _save(metadata)

    logger.info(f"[{session_id}] 분석 완료: {len(regions)}개 영역, 레이어 {len(metadata.layers)}개")


async def get_session(session_id: str) -> SessionResponse | None:
    try:
        return _to_response(_load(session_id))
    except SessionNotFoundError:
        return None


async def add_layer(session_id: str, request: LayerCreate) -> TextLayer:
    """기본 스타일의 수동 레이어 추가 (리스트 맨 뒤 = 가장 위)"""
    metadata = _load(session_id)

    layer = TextLayer(
        id=generate_layer_id(),
        text=request.text,
        x=request.x,
        y=request.y,
        font_size=LayerDefaults.FONT_SIZE,
        color=LayerDefaults.COLOR,
        background_color=LayerDefaults.BACKGROUND_COLOR,
        padding=LayerDefaults.PADDING,
        font_family=LayerDefaults.FONT_FAMILY,
        font_weight=FontWeight(LayerDefaults.FONT_WEIGHT),
        opacity=1.0,
    )
    metadata.layers.append(layer)
    _save(metadata)

    return layer


async def update_layer(session_id: str, layer_id: str, request: LayerUpdate) -> TextLayer:
    """레이어 부분 수정 (픽셀은 건드리지 않음)

    Raises:
        SessionNotFoundError, LayerNotFoundError
    """
    metadata = _load(session_id)
    index = _find_layer_index(metadata, layer_id)

    updates = request.model_dump(exclude_unset=True, exclude_none=True)
    layer = TextLayer.model_validate({**metadata.layers[index].model_dump(), **updates})
    metadata.layers[index] = layer
    _save(metadata)

    return layer


async def move_layer(session_id: str, layer_id: str, move: DragMove) -> TextLayer:
    """드래그 좌표 → percent 위치로 레이어 이동"""
    x, y = drag_to_percent(
        move.pointer_x,
        move.pointer_y,
        move.offset_x,
        move.offset_y,
        move.container_width,
        move.container_height,
    )
    return await update_layer(session_id, layer_id, LayerUpdate(x=x, y=y))


async def remove_layer(session_id: str, layer_id: str) -> None:
    metadata = _load(session_id)
    index = _find_layer_index(metadata, layer_id)

    del metadata.layers[index]
    _save(metadata)


async def get_preview(
    session_id: str, display_width: float, display_height: float
) -> list[LayerPreview]:
    metadata = _load(session_id)
    return build_preview(metadata.layers, display_width, display_height)


async def export_session(session_id: str) -> bytes:
    """현재 base 이미지 + 레이어 합성 PNG

    Raises:
        SessionNotFoundError: 세션 없음
        RenderingError: base 이미지 디코딩 실패
    """
    metadata = _load(session_id)
    image_bytes = get_storage().read(metadata.image_path)

    result = await asyncio.to_thread(export_png, image_bytes, metadata.layers)
    logger.info(f"[{session_id}] Export 완료: 레이어 {len(metadata.layers)}개")
    return result
