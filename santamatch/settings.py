import os
from datetime import datetime
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .services.draw import MatchOptions

TRUTHY = {"true", "1", "yes", "on"}
FALSY = {"false", "0", "no", "off", ""}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in TRUTHY:
        return True
    if value in FALSY:
        return False
    raise RuntimeError(f"{name} must be a boolean (true/false), got '{raw}'.")


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got '{raw}'.") from None


def load_match_options_from_env() -> MatchOptions:
    load_dotenv()  # loads .env into process env; no-op if already loaded

    defaults = MatchOptions()
    try:
        return MatchOptions(
            strategy=(os.getenv("SANTA_STRATEGY") or defaults.strategy).strip().lower(),
            hall_check=_env_bool("SANTA_HALL_CHECK", defaults.hall_check),
            hall_check_max_participants=_env_int(
                "SANTA_HALL_MAX_PARTICIPANTS", defaults.hall_check_max_participants),
            hall_check_max_subset=_env_int("SANTA_HALL_MAX_SUBSET", defaults.hall_check_max_subset),
            max_attempts=_env_int("SANTA_MAX_ATTEMPTS", defaults.max_attempts),
            fallback_to_backtracking=_env_bool("SANTA_FALLBACK", defaults.fallback_to_backtracking),
            max_steps=_env_int("SANTA_MAX_STEPS", defaults.max_steps),
        )
    except ValueError as e:
        raise RuntimeError(f"Invalid SANTA_* setting: {e}") from e


def default_output_dir() -> Path:
    load_dotenv()
    configured = (os.getenv("SANTA_OUTPUT_DIR") or "").strip()
    return Path(configured) if configured else Path(f"secret-santa-{datetime.now().year}")


def is_super_secret_mode() -> bool:
    load_dotenv()
    return _env_bool("SANTA_SUPER_SECRET", False)


def log_level() -> str:
    load_dotenv()
    return (os.getenv("SANTA_LOG_LEVEL") or "INFO").strip().upper()
