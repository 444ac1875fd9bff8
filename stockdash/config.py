# stockdash/config.py
"""Environment-driven settings. `.env` in the working directory is loaded first."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_API_URL = "http://localhost:5000"
DEFAULT_SESSION_FILE = Path.home() / ".stockdash" / "session.json"


def _get(key: str, default: str = "") -> str:
    val = os.getenv(key, "").strip()
    return val if val else default


def _get_float(key: str, default: float) -> float:
    raw = _get(key)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    api_url: str = DEFAULT_API_URL
    timeout: float = 10.0
    session_file: Path = DEFAULT_SESSION_FILE
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "Settings":
        load_dotenv(env_file or Path.cwd() / ".env")
        log_file = _get("STOCKDASH_LOG_FILE")
        return cls(
            api_url=_get("STOCKDASH_API_URL", DEFAULT_API_URL).rstrip("/"),
            timeout=_get_float("STOCKDASH_TIMEOUT", 10.0),
            session_file=Path(_get("STOCKDASH_SESSION_FILE", str(DEFAULT_SESSION_FILE))).expanduser(),
            log_level=_get("STOCKDASH_LOG_LEVEL", "INFO").upper(),
            log_file=Path(log_file) if log_file else None,
        )
