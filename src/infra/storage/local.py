import uuid
from pathlib import Path

from fastapi import HTTPException, UploadFile

from src.config import get_settings

CHUNK_SIZE = 1024 * 1024  # 1MB

EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "image/bmp": ".bmp",
}


class LocalStorage:
    """로컬 파일 시스템 저장소 구현체. S3Storage로 교체 가능."""

    def __init__(self, base_dir: Path, base_url: str = "/static"):
        self.base_dir = base_dir
        self.base_url = base_url

    async def save(
        self, file: UploadFile, subdir: str = "original", filename: str | None = None
    ) -> str:
        """업로드 파일 저장 후 상대 경로 반환

        형식 검증은 image/* content-type과 크기 상한만 확인한다.
        디코딩 가능 여부는 검사하지 않음 (erase 단계에서 best-effort 처리).

        Raises:
            HTTPException(400): 이미지 형식이 아니거나 크기 초과 시
        """
        self._validate_content_type(file.content_type)

        content = await self._read_with_size_limit(file)
        ext = Path(file.filename or "").suffix or EXTENSIONS.get(file.content_type or "", ".jpg")
        return self.save_bytes(content, subdir=subdir, filename=filename, ext=ext)

    def save_bytes(
        self, content: bytes, subdir: str, filename: str | None = None, ext: str = ".jpg"
    ) -> str:
        name = filename or uuid.uuid4().hex
        relative_path = f"{subdir}/{name}{ext}"
        save_path = self.base_dir / relative_path
        save_path.parent.mkdir(parents=True, exist_ok=True)

        save_path.write_bytes(content)
        return relative_path

    def read(self, relative_path: str) -> bytes:
        return (self.base_dir / relative_path).read_bytes()

    def get_url(self, relative_path: str) -> str:
        return f"{self.base_url}/{relative_path}"

    def exists(self, relative_path: str) -> bool:
        return (self.base_dir / relative_path).exists()

    def delete(self, relative_path: str) -> bool:
        file_path = self.base_dir / relative_path
        if file_path.exists():
            file_path.unlink()
            return True
        return False

    def _validate_content_type(self, content_type: str | None) -> None:
        if not content_type or not content_type.startswith("image/"):
            raise HTTPException(
                status_code=400,
                detail={
                    "code": "UNSUPPORTED_FILE_TYPE",
                    "message": f"지원하지 않는 파일 형식: {content_type or '알 수 없음'}",
                },
            )

    async def _read_with_size_limit(self, file: UploadFile) -> bytes:
        max_size = get_settings().max_upload_size
        chunks: list[bytes] = []
        total_size = 0

        while chunk := await file.read(CHUNK_SIZE):
            total_size += len(chunk)
            if total_size > max_size:
                raise HTTPException(
                    status_code=400,
                    detail={
                        "code": "FILE_TOO_LARGE",
                        "message": f"파일 크기 초과: {total_size}+ bytes (최대 {max_size} bytes)",
                    },
                )
            chunks.append(chunk)

        return b"".join(chunks)
