from pathlib import Path

from src.config import get_settings

from .base import StorageBackend
from .local import LocalStorage

__all__ = ["StorageBackend", "LocalStorage", "get_storage", "set_storage"]


def _find_project_root() -> Path:
    """pyproject.toml 위치를 프로젝트 루트로 탐색"""
    current = Path(__file__).resolve().parent
    while current != current.parent:
        if (current / "pyproject.toml").exists():
            return current
        current = current.parent
    raise RuntimeError("프로젝트 루트를 찾을 수 없음")


class _StorageHolder:
    instance: StorageBackend | None = None


def get_storage() -> StorageBackend:
    """이미지 저장소 반환 (STORAGE_DIR 미설정 시 <프로젝트 루트>/uploads)"""
    if _StorageHolder.instance is None:
        settings = get_settings()
        base_dir = Path(settings.storage_dir) if settings.storage_dir else None
        _StorageHolder.instance = LocalStorage(
            base_dir=base_dir or _find_project_root() / "uploads",
            base_url=f"{settings.base_url}/static",
        )
    return _StorageHolder.instance


def set_storage(storage: StorageBackend | None) -> None:
    _StorageHolder.instance = storage
