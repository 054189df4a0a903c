# laundry/config.py
from __future__ import annotations

import os
from pathlib import Path
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

# Load .env locally (safe in prod too)
load_dotenv()


PROJECT_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_DATA_DIR = PROJECT_ROOT / "data"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, str(default))
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [x.strip() for x in raw.split(",") if x.strip()]


# -------------------
# Config (env-driven)
# -------------------
class Settings(BaseModel):
    deployment_mode: Literal["server", "local"] = (
        "local" if os.getenv("DEPLOYMENT_MODE", "server").strip().lower() == "local" else "server"
    )
    storage_backend: Literal["file", "memory"] = (
        "memory" if os.getenv("STORAGE_BACKEND", "file").strip().lower() == "memory" else "file"
    )
    data_dir: Path = Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR)))

    jwt_secret: str = os.getenv("JWT_SECRET", "laundry-service-secret-key")
    jwt_alg: str = os.getenv("JWT_ALG", "HS256")
    # default 24h
    jwt_expire_minutes: int = _env_int("JWT_EXPIRE_MIN", 1440)

    remote_api_url: Optional[str] = os.getenv("REMOTE_API_URL", "").strip() or None
    remote_timeout: float = _env_float("REMOTE_TIMEOUT", 5.0)

    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = _env_int("PORT", 3001)

    log_level: str = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    cors_origins: List[str] = _env_list("CORS_ORIGINS", "*")

    @property
    def users_file(self) -> Path:
        return self.data_dir / "users.json"

    @property
    def orders_file(self) -> Path:
        return self.data_dir / "orders.json"
