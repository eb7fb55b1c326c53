"""Environment configuration with optional .env file support."""
import logging
import os
from pathlib import Path
from threading import Lock

logger = logging.getLogger(__name__)

ENV_KEYS = {
    "ADMIN_PIN",
    "TEAMUP_DATA_FILE",
    "TEAMUP_GROUP_SIZE",
    "TEAMUP_RATE_LIMIT",
    "TEAMUP_RATE_WINDOW",
}

_ENV_LOADED = False
_ENV_LOCK = Lock()


def load_env(env_path: str = ".env", force: bool = False) -> None:
    """
    Load known settings from a .env file if present.

    Variables already set in the process environment are left untouched.
    The file is read only once per process unless ``force`` is set.
    """
    global _ENV_LOADED

    if _ENV_LOADED and not force:
        return

    with _ENV_LOCK:
        if _ENV_LOADED and not force:
            return

        path = Path(env_path)
        if path.exists():
            for raw_line in path.read_text(encoding="utf-8").splitlines():
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue

                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip().strip('"\'')

                if key in ENV_KEYS and key not in os.environ:
                    os.environ[key] = value

        _ENV_LOADED = True


def get_setting(key: str, default: str) -> str:
    load_env()
    return os.getenv(key, default)


def get_int_setting(key: str, default: int) -> int:
    """Read an integer setting, falling back to ``default`` on bad values."""
    raw = get_setting(key, str(default))
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {key}: {raw!r}, using {default}")
        return default
