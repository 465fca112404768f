import logging
import os
from dataclasses import dataclass
from pathlib import Path


def _project_root() -> Path:
    # engine/config.py -> engine -> project root
    return Path(__file__).resolve().parents[1]


def _getenv_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return default if value is None or value.strip() == "" else value.strip()


def _getenv_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        parsed = int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if parsed < 1:
        raise ValueError(f"{name} must be at least 1, got {parsed}")
    return parsed


def _getenv_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        parsed = float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")
    if parsed <= 0:
        raise ValueError(f"{name} must be positive, got {parsed}")
    return parsed


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    log_level: str
    fetch_timeout: float
    max_workers: int
    user_agent: str


def get_settings() -> Settings:
    """
    Read settings from the environment. Called at start-up by the CLI and the
    Streamlit app; library functions take explicit arguments instead.
    """
    data_dir = Path(_getenv_str("KYN_DATA_DIR", str(_project_root() / "data")))
    return Settings(
        data_dir=data_dir.expanduser(),
        log_level=_getenv_str("KYN_LOG_LEVEL", "WARNING").upper(),
        fetch_timeout=_getenv_float("KYN_FETCH_TIMEOUT", 15.0),
        max_workers=_getenv_int("KYN_MAX_WORKERS", 4),
        user_agent=_getenv_str(
            "KYN_USER_AGENT", "Mozilla/5.0 (compatible; SourceVerifier/1.0)"
        ),
    )


def configure_logging(level="WARNING"):
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
