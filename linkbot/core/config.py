import os
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _env_bool(key: str, default: bool) -> bool:
    val = os.getenv(key)
    if val is None:
        return default
    return str(val).strip().lower() not in {"0", "false", "no", "off"}


def _env_int(key: str, default: int) -> int:
    val = os.getenv(key)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        return default


def _env_float(key: str, default: float) -> float:
    val = os.getenv(key)
    if val is None:
        return default
    try:
        return float(val)
    except ValueError:
        return default


def _env_list(key: str, default: List[str]) -> List[str]:
    val = os.getenv(key)
    if val is None:
        return list(default)
    return [item.strip().lower() for item in val.split(",") if item.strip()]


BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/60.0.3112.113 Safari/537.36"
)

# Media platforms that serve their own preview markup to non-browser clients.
DEFAULT_UA_HOSTS = ["spotify.com", "youtube.com", "youtu.be"]


class Settings:
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    LINK_FETCH_ENABLED = _env_bool("LINK_FETCH_ENABLED", True)
    LINK_CACHE_TTL_SEC = _env_int("LINK_CACHE_TTL_SEC", 300)
    LINK_CACHE_SWEEP_SEC = _env_int("LINK_CACHE_SWEEP_SEC", 600)
    LINK_REQUEST_TIMEOUT = _env_float("LINK_REQUEST_TIMEOUT", 3.0)
    LINK_MAX_RESPONSE_BYTES = _env_int("LINK_MAX_RESPONSE_BYTES", 5 * 1024 * 1024)
    LINK_USER_AGENT = os.getenv("LINK_USER_AGENT", BROWSER_USER_AGENT)
    LINK_DEFAULT_UA_HOSTS = _env_list("LINK_DEFAULT_UA_HOSTS", DEFAULT_UA_HOSTS)
    LINK_LOCK_MODE = os.getenv("LINK_LOCK_MODE", "per_url").strip().lower()
    LINK_ERROR_NOTICES = _env_bool("LINK_ERROR_NOTICES", False)

    MEDIA_UPLOAD_URL = os.getenv("MEDIA_UPLOAD_URL", "").rstrip("/")
    MEDIA_ACCESS_TOKEN = os.getenv("MEDIA_ACCESS_TOKEN", "")


settings = Settings()
