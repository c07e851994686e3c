from typing import List, Union, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


class Settings(BaseSettings):
    # ==== Інфраструктура ====
    database_url: str = "postgresql+asyncpg://app:app@db:5432/sstdesk"
    redis_url: str = "redis://redis:6379/0"
    notifications_queue: str = "notifications"

    # ==== Безпека / Auth ====
    jwt_secret: str = "changeme"
    jwt_alg: str = "HS256"

    # час життя токена, хвилини
    jwt_expires_min: int = 60 * 8

    # кука, з якої сторінки /dashboard беруть токен
    session_cookie_name: str = "access_token"

    # ==== CORS ====
    # CORS_ORIGINS=http://localhost:3000,http://127.0.0.1:3000
    cors_origins: Union[str, List[str]] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # ==== Bootstrap / seed ====
    admin_email: str = "admin@sst.com"
    admin_password: str = "password123"
    admin_name: str = "Administrador Principal"
    create_demo_employee: bool = True
    create_demo_client: bool = True

    # ==== Файли документів ====
    upload_dir: str = "uploads/documents"
    # публічний префікс, під яким фронт віддає upload_dir
    upload_url_prefix: str = "/uploads/documents"
    max_upload_mb: int = 10

    # ==== Вебхуки для воркера нотифікацій ====
    webhook_url: Optional[str] = None
    webhook_secret: Optional[str] = None

    # ==== Логування / Оточення ====
    env: str = "dev"          # dev|staging|prod
    log_level: str = "INFO"   # DEBUG|INFO|WARNING|ERROR

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("[") and s.endswith("]"):
                import json
                try:
                    parsed = json.loads(s)
                except ValueError:
                    parsed = None
                if isinstance(parsed, list):
                    return [str(i).strip() for i in parsed if str(i).strip()]
            return [i.strip() for i in s.split(",") if i.strip()]
        return v


settings = Settings()
