import secrets
from typing import Annotated, Any, Literal

from pydantic import AnyUrl, BeforeValidator, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_cors(v: Any) -> list[str] | str:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",") if i.strip()]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


DEFAULT_SEED_TAGS = [
    "Programming",
    "Design",
    "Technology",
    "Data Science",
    "AI",
    "Business",
    "Web Development",
    "JavaScript",
    "React",
    "CSS",
]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )
    PROJECT_NAME: str = "BlogSpace"
    API_PREFIX: str = "/api"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"

    SECRET_KEY: str = secrets.token_urlsafe(32)
    # 60 minutes * 24 hours * 8 days = 8 days
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 8

    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS]

    # "database" persists through SQLModel, "memory" keeps everything in-process
    STORAGE_BACKEND: Literal["database", "memory"] = "database"
    DATABASE_URL: str = "sqlite:///./blogspace.db"
    SEED_TAGS: list[str] = DEFAULT_SEED_TAGS

    UPLOAD_DIR: str = "uploads"
    MAX_AVATAR_BYTES: int = 5 * 1024 * 1024

    # OpenAI-compatible completion provider
    LLM_API_KEY: str | None = None
    LLM_BASE_URL: str | None = None
    MODEL_DEFAULT: str = "gpt-4o"
    MODEL_TTS: str = "tts-1"
    TTS_VOICE: str = "alloy"
    AI_MAX_INPUT_CHARS: int = 4000


settings = Settings()  # type: ignore
