"""Environment loader helper to ensure .env is applied early."""

import os
from typing import Optional

from dotenv import find_dotenv, load_dotenv


_ENV_LOADED = False


def load_env() -> None:
    """Load .env once if available (no override)."""
    global _ENV_LOADED
    if _ENV_LOADED:
        return
    dotenv_path = find_dotenv(usecwd=True)
    if dotenv_path:
        load_dotenv(dotenv_path, override=False)
    _ENV_LOADED = True


def getenv(key: str, default: Optional[str] = None) -> Optional[str]:
    """Get env var after ensuring .env is loaded."""
    load_env()
    return os.getenv(key, default)
