from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0

    # App
    base_url: str = "http://localhost:8000"

    # CORS
    cors_origins: list[str] = ["http://localhost:5173"]

    # Vision (텍스트 탐지 + 캡션 추천)
    vision_provider: str = "gemini"  # "gemini"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-3-flash-preview"

    # Storage / Upload
    storage_dir: str = ""  # 비어 있으면 <프로젝트 루트>/uploads
    max_upload_size: int = 20 * 1024 * 1024  # 20MB

    # Erase
    sample_margin: int = 5  # 배경색 샘플링 지점 (박스 바깥 px)
    bleed: int = 4  # 덧칠 여유 영역 (px, 사방)
    jpeg_quality: int = 98

    # Rendering
    font_dir: str = "fonts"
    export_filename: str = "cleaned-and-edited.png"


@lru_cache
def get_settings() -> Settings:
    return Settings()
