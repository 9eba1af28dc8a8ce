from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any, Dict, List, Optional

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _clean(v: Any) -> str:
    return ("" if v is None else str(v)).strip()


def _split_origins(raw: Any) -> List[str]:
    """
    CORS origins from env: a list, "*", or "https://a.com, https://b.com".
    Anything empty means allow all.
    """
    items = raw if isinstance(raw, list) else _clean(raw).split(",")
    origins = [_clean(x) for x in items]
    return [o for o in origins if o] or ["*"]


# Fields where a blank env value means "use the default", not "empty string"
_BLANK_DEFAULTS: Dict[str, str] = {
    "log_level": "INFO",
    "host": "127.0.0.1",
    "auth_email_header": "X-User-Email",
    "public_app_url": "http://localhost:3000",
    "db_path": "./data/secret_santa.sqlite",
}


class Settings(BaseSettings):
    """
    Process-level settings (env + .env).

    Organization-level configuration (branding, SMTP, admin list) lives in the
    database singleton row; see services/organization.py. The EMAIL_* values
    here only fill fields the admin left blank.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # App identity
    env: str = Field(default="local", alias="APP_ENV")
    app_name: str = Field(default="secret-santa", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # uvicorn
    host: str = Field(default="127.0.0.1", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # NoDecode: the raw env string reaches the validator instead of json.loads
    cors_allow_origins: Annotated[List[str], NoDecode] = Field(default_factory=lambda: ["*"], alias="CORS_ALLOW_ORIGINS")

    # DATABASE_URL wins; DB_PATH is a plain SQLite file path
    database_url: str = Field(default="", alias="DATABASE_URL")
    db_path: str = Field(default="./data/secret_santa.sqlite", alias="DB_PATH")

    # Set by the sign-in proxy to the authenticated user's email
    auth_email_header: str = Field(default="X-User-Email", alias="AUTH_EMAIL_HEADER")

    # Link in reminder emails
    public_app_url: str = Field(default="http://localhost:3000", alias="PUBLIC_APP_URL")

    # Insert attempts per draw before giving up on a contended receiver
    draw_max_attempts: int = Field(default=3, ge=1, le=10, alias="DRAW_MAX_ATTEMPTS")

    # Mail transport
    smtp_timeout_s: float = Field(default=10.0, gt=0, alias="SMTP_TIMEOUT_S")
    email_server: str = Field(default="", alias="EMAIL_SERVER")
    email_port: Optional[int] = Field(default=None, alias="EMAIL_PORT")
    email_user: str = Field(default="", alias="EMAIL_USER")
    email_password: str = Field(default="", alias="EMAIL_PASSWORD")
    email_from: str = Field(default="", alias="EMAIL_FROM")
    hr_email: str = Field(default="", alias="HR_EMAIL")

    # -------------------------
    # Validators / normalizers
    # -------------------------

    @field_validator(*_BLANK_DEFAULTS, mode="before")
    @classmethod
    def _blank_means_default(cls, v: Any, info: ValidationInfo) -> str:
        return _clean(v) or _BLANK_DEFAULTS[info.field_name]

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, v: str) -> str:
        return v.upper()

    @field_validator("public_app_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/") or _BLANK_DEFAULTS["public_app_url"]

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _norm_cors_allow_origins(cls, v: Any) -> List[str]:
        return _split_origins(v)

    @field_validator("email_port", mode="before")
    @classmethod
    def _norm_email_port(cls, v: Any) -> Optional[int]:
        s = _clean(v)
        return int(s) if s.isdigit() else None

    @field_validator(
        "database_url",
        "email_server",
        "email_user",
        "email_password",
        "email_from",
        "hr_email",
        mode="before",
    )
    @classmethod
    def _norm_str(cls, v: Any) -> str:
        return _clean(v)

    # -------------------------
    # Derived helpers
    # -------------------------

    @property
    def is_prod(self) -> bool:
        return self.env.strip().lower() in ("prod", "production")

    @property
    def resolved_database_url(self) -> str:
        """
        DATABASE_URL if set, else a sqlite:/// URL built from DB_PATH
        (which may itself already be a sqlite: URL).
        """
        if self.database_url:
            return self.database_url

        if self.db_path.startswith("sqlite:"):
            return self.db_path

        p = Path(self.db_path)
        if p.is_absolute():
            return f"sqlite:///{p.as_posix()}"
        return f"sqlite:///./{p.as_posix()}"


settings = Settings()
