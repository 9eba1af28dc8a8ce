from __future__ import annotations

from secret_santa.config import Settings


def test_blank_values_fall_back_to_defaults() -> None:
    s = Settings(HOST="  ", LOG_LEVEL="debug", AUTH_EMAIL_HEADER="", PUBLIC_APP_URL="https://santa.test/")

    assert s.host == "127.0.0.1"
    assert s.log_level == "DEBUG"
    assert s.auth_email_header == "X-User-Email"
    assert s.public_app_url == "https://santa.test"


def test_cors_origins_parsing() -> None:
    assert Settings(CORS_ALLOW_ORIGINS="").cors_allow_origins == ["*"]
    assert Settings(CORS_ALLOW_ORIGINS="https://a.test, ,https://b.test").cors_allow_origins == [
        "https://a.test",
        "https://b.test",
    ]


def test_database_url_resolution() -> None:
    assert Settings(DATABASE_URL="postgresql://u@h/db").resolved_database_url == "postgresql://u@h/db"
    assert Settings(DATABASE_URL="", DB_PATH="data/s.sqlite").resolved_database_url == "sqlite:///./data/s.sqlite"
    assert Settings(DATABASE_URL="", DB_PATH="/var/lib/s.sqlite").resolved_database_url == "sqlite:////var/lib/s.sqlite"
    assert Settings(DATABASE_URL="", DB_PATH="sqlite:///x.db").resolved_database_url == "sqlite:///x.db"


def test_email_port_is_optional() -> None:
    assert Settings(EMAIL_PORT="").email_port is None
    assert Settings(EMAIL_PORT="abc").email_port is None
    assert Settings(EMAIL_PORT="2525").email_port == 2525
