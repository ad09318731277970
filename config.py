import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        csrf_secret: str,
        default_locale: str,
        user_header: str,
        default_user: str,
        cookie_max_age_days: int,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.csrf_secret = csrf_secret
        self.default_locale = default_locale
        self.user_header = user_header
        self.default_user = default_user
        self.cookie_max_age_days = cookie_max_age_days


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("EXPENSES_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "spendwise.db"
    database_url = os.getenv("EXPENSES_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("EXPENSES_TIMEZONE", "Asia/Kolkata")
    csrf_secret = os.getenv(
        "EXPENSES_CSRF_SECRET",
        "3f9c1d7be04a6f2c88e15b0d9a47c6e2f1b8d3a5c7e9f0a2b4d6e8f1a3c5e7b9",
    )
    default_locale = os.getenv("EXPENSES_DEFAULT_LOCALE", "en")
    user_header = os.getenv("EXPENSES_USER_HEADER", "X-User-Id")
    default_user = os.getenv("EXPENSES_DEFAULT_USER", "local")
    cookie_max_age_days = int(os.getenv("EXPENSES_COOKIE_MAX_AGE_DAYS", "365"))
    return Settings(
        database_url=database_url,
        timezone=timezone,
        csrf_secret=csrf_secret,
        default_locale=default_locale,
        user_header=user_header,
        default_user=default_user,
        cookie_max_age_days=cookie_max_age_days,
    )
