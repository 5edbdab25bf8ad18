"""Environment-driven settings. A local .env file is honoured when present."""
import os

from dotenv import load_dotenv

load_dotenv()

DEFAULT_DB_PATH = os.path.join(os.path.dirname(__file__), "articles.db")


def _flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def db_path() -> str:
    return os.environ.get("ARTICLE_DB_PATH", DEFAULT_DB_PATH)


def log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").upper()


def log_dir():
    return os.environ.get("LOG_DIR")


def redis_url():
    return os.environ.get("REDIS_URL")


def max_login_attempts() -> int:
    return int(os.environ.get("MAX_LOGIN_ATTEMPTS", 5))


def login_window_seconds() -> int:
    return int(os.environ.get("LOGIN_WINDOW_SECONDS", 900))


def strict_decode() -> bool:
    return _flag("STRICT_DECODE")


def pbkdf2_digest() -> str:
    return os.environ.get("PBKDF2_DIGEST", "sha1")


def port() -> int:
    return int(os.environ.get("PORT", 5000))
