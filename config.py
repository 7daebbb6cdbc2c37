import os
from dataclasses import dataclass

from dotenv import load_dotenv

# ----------------------------
# Defaults
# ----------------------------

DEFAULT_DATA_FILE = "data/booking_data.json"

# Recurring requests without an end date are expanded over this many weeks.
DEFAULT_RECURRENCE_HORIZON_WEEKS = 12

# Well-known credential for the seeded admin account. Change it after first login.
DEFAULT_ADMIN_USERNAME = "admin"
DEFAULT_ADMIN_PASSWORD = "admin"

STORAGE_BACKENDS = ("json", "memory")


@dataclass(frozen=True)
class Settings:
    storage: str = "json"
    data_file: str = DEFAULT_DATA_FILE
    recurrence_horizon_weeks: int = DEFAULT_RECURRENCE_HORIZON_WEEKS
    default_admin_username: str = DEFAULT_ADMIN_USERNAME
    default_admin_password: str = DEFAULT_ADMIN_PASSWORD
    log_level: str = "INFO"


def load_settings() -> Settings:
    """
    Read settings from the environment (and a `.env` file, if present).
    Invalid values fail fast so a misconfigured server never starts.
    """
    load_dotenv()

    storage = os.environ.get("BOOKING_STORAGE", "json").strip().lower()
    if storage not in STORAGE_BACKENDS:
        raise ValueError(f"BOOKING_STORAGE must be one of {STORAGE_BACKENDS}, got {storage!r}.")

    raw_horizon = os.environ.get("BOOKING_RECURRENCE_HORIZON_WEEKS", str(DEFAULT_RECURRENCE_HORIZON_WEEKS))
    try:
        horizon = int(raw_horizon)
    except ValueError:
        raise ValueError(f"BOOKING_RECURRENCE_HORIZON_WEEKS must be an integer, got {raw_horizon!r}.")
    if horizon <= 0:
        raise ValueError("BOOKING_RECURRENCE_HORIZON_WEEKS must be positive.")

    return Settings(
        storage=storage,
        data_file=os.environ.get("BOOKING_DATA_FILE", DEFAULT_DATA_FILE),
        recurrence_horizon_weeks=horizon,
        default_admin_username=os.environ.get("BOOKING_DEFAULT_ADMIN_USERNAME", DEFAULT_ADMIN_USERNAME),
        default_admin_password=os.environ.get("BOOKING_DEFAULT_ADMIN_PASSWORD", DEFAULT_ADMIN_PASSWORD),
        log_level=os.environ.get("BOOKING_LOG_LEVEL", "INFO").upper(),
    )
