import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

# load_dotenv() runs before any value is read so that a local .env can override
# the defaults below.
from dotenv import load_dotenv

load_dotenv()

ROOT_DIR = Path(__file__).resolve().parent


@dataclass(frozen=True)
class Settings:
    fonts_dir: Path
    render_scale: float
    output_dir: Path
    log_level: str
    export_workers: int


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    try:
        value = float(raw) if raw else default
    except ValueError:
        print(f"[WARN] {name}={raw!r} is not a number. Using {default}.")
        return default
    return value if value > 0 else default


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    try:
        value = int(raw) if raw else default
    except ValueError:
        print(f"[WARN] {name}={raw!r} is not an integer. Using {default}.")
        return default
    return max(1, value)


def _log_level_env(name: str, default: str) -> str:
    raw = os.environ.get(name, "").strip().upper()
    if not raw:
        return default
    if not isinstance(logging.getLevelName(raw), int):
        print(f"[WARN] {name}={raw!r} is not a logging level. Using {default}.")
        return default
    return raw


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        fonts_dir=Path(os.environ.get("CERT_FONTS_DIR", str(ROOT_DIR / "fonts"))),
        render_scale=_float_env("CERT_RENDER_SCALE", 1.0),
        output_dir=Path(os.environ.get("CERT_OUTPUT_DIR", "out")),
        log_level=_log_level_env("CERT_LOG_LEVEL", "INFO"),
        export_workers=_int_env("CERT_EXPORT_WORKERS", 1),
    )
