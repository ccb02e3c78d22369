"""Session API 라우트

업로드 → 텍스트 제거/레이어 생성, 레이어 편집, 미리보기, Export 엔드포인트.
"""

from typing import Annotated

from fastapi import APIRouter, File, HTTPException, Query, Response, UploadFile, status

from src.config import get_settings
from src.schemas.editor import DragMove, LayerCreate, LayerPreview, LayerUpdate, TextLayer
from src.services import session as session_service
from src.services.rendering import RenderingError

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _session_not_found(session_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"code": "SESSION_NOT_FOUND", "message": f"세션을 찾을 수 없습니다: {session_id}"},
    )


def _layer_not_found(layer_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"code": "LAYER_NOT_FOUND", "message": f"레이어를 찾을 수 없습니다: {layer_id}"},
    )


@router.post(
    "",
    response_model=session_service.SessionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_session(
    file: Annotated[UploadFile, File()],
) -> session_service.SessionResponse:
    """이미지 업로드 + 텍스트 제거 (세션 생성)"""
    return await session_service.create_session(file)


@router.get("/{session_id}", response_model=session_service.SessionResponse)
async def read_session(session_id: str) -> session_service.SessionResponse:
    result = await session_service.get_session(session_id)
    if result is None:
        raise _session_not_found(session_id)
    return result


@router.post("/{session_id}/image", response_model=session_service.SessionResponse)
async def replace_image(
    session_id: str, file: Annotated[UploadFile, File()]
) -> session_service.SessionResponse:
    """같은 세션에 새 이미지 업로드 (기존 레이어 초기화)"""
    try:
        return await session_service.replace_image(session_id, file)
    except session_service.SessionNotFoundError:
        raise _session_not_found(session_id) from None


@router.post(
    "/{session_id}/layers",
    response_model=TextLayer,
    status_code=status.HTTP_201_CREATED,
)
async def add_layer(session_id: str, request: LayerCreate | None = None) -> TextLayer:
    try:
        return await session_service.add_layer(session_id, request or LayerCreate())
    except session_service.SessionNotFoundError:
        raise _session_not_found(session_id) from None


@router.patch("/{session_id}/layers/{layer_id}", response_model=TextLayer)
async def update_layer(session_id: str, layer_id: str, request: LayerUpdate) -> TextLayer:
    try:
        return await session_service.update_layer(session_id, layer_id, request)
    except session_service.SessionNotFoundError:
        raise _session_not_found(session_id) from None
    except session_service.LayerNotFoundError:
        raise _layer_not_found(layer_id) from None


@router.post("/{session_id}/layers/{layer_id}/move", response_model=TextLayer)
async def move_layer(session_id: str, layer_id: str, request: DragMove) -> TextLayer:
    try:
        return await session_service.move_layer(session_id, layer_id, request)
    except session_service.SessionNotFoundError:
        raise _session_not_found(session_id) from None
    except session_service.LayerNotFoundError:
        raise _layer_not_found(layer_id) from None


@router.delete("/{session_id}/layers/{layer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_layer(session_id: str, layer_id: str) -> None:
    try:
        await session_service.remove_layer(session_id, layer_id)
    except session_service.SessionNotFoundError:
        raise _session_not_found(session_id) from None
    except session_service.LayerNotFoundError:
        raise _layer_not_found(layer_id) from None


@router.get("/{session_id}/preview", response_model=list[LayerPreview])
async def preview(
    session_id: str,
    width: Annotated[float, Query(gt=0)],
    height: Annotated[float, Query(gt=0)],
) -> list[LayerPreview]:
    """현재 표시 크기 기준 레이어 배치 (export와 1:1)"""
    try:
        return await session_service.get_preview(session_id, width, height)
    except session_service.SessionNotFoundError:
        raise _session_not_found(session_id) from None


@router.get("/{session_id}/export")
async def export(session_id: str) -> Response:
    """합성 결과 PNG 다운로드"""
    try:
        content = await session_service.export_session(session_id)
    except session_service.SessionNotFoundError:
        raise _session_not_found(session_id) from None
    except RenderingError as e:
        raise HTTPException(
            status_code=422,
            detail={"code": "RENDER_FAILED", "message": str(e)},
        ) from None

    filename = get_settings().export_filename
    return Response(
        content=content,
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
