# floor_manager/config.py
import os
from pathlib import Path

from .constants import DATA_DIR, DB_FILE_NAME

BASE_DIR = Path(__file__).resolve().parent


def data_path() -> Path:
    """Directory holding the JSON blob. FLOOR_MANAGER_DATA_DIR overrides it."""
    env_base = os.getenv("FLOOR_MANAGER_DATA_DIR", "").strip()
    if env_base:
        return Path(env_base)
    return BASE_DIR.parent / DATA_DIR


DATA_PATH = data_path()
DB_PATH = DATA_PATH / DB_FILE_NAME
