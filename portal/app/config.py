# portal/app/config.py
from __future__ import annotations

from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve repo root: repo/ (since this file is repo/portal/app/config.py)
REPO_ENV = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    """
    Central config for the portal service. Uses Pydantic v2 + pydantic-settings.

    - Loads env from the repo root .env if present
    - Ignores unknown env vars (prevents CI/local crashes)
    - Case-insensitive env keys
    - Sane defaults for local dev & tests (no live services required)
    """

    model_config = SettingsConfigDict(
        env_file=str(REPO_ENV),
        extra="ignore",
        case_sensitive=False,
    )

    # --- Registration-form OCR (Ollama vision model) --------------------------
    OLLAMA_URL: str = "http://host.docker.internal:11434"
    OCR_MODEL: str = "llama3.2-vision"
    OCR_TEMPERATURE: float = 0.0
    OCR_TIMEOUT_S: int = 120  # owned by the provider, never by the intake boundary
    OCR_DEV_MODE: int = 0  # 1 -> canned extraction, no network

    # --- Document store (Qdrant used as a payload store) ----------------------
    QDRANT_URL: str = "http://host.docker.internal:6333"  # ":memory:" -> in-process
    STORE_PREFIX: str = "eventdesk"

    # --- Identity provider ----------------------------------------------------
    IDENTITY_URL: str = "https://identitytoolkit.googleapis.com/v1"
    IDENTITY_API_KEY: str = ""
    IDENTITY_DEV_MODE: int = 0  # 1 -> in-process accounts, no network
    IDENTITY_TIMEOUT_S: int = 15

    # --- HTTP surface ---------------------------------------------------------
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000,http://localhost:9002"
    PORT: int = 8090
    MAX_UPLOAD_BYTES: int = 1024 * 1024 * 10  # 10 MiB

    # --- Logs -----------------------------------------------------------------
    LOG_DIR: str = "data/logs"
    MAX_LOG_MB: int = 16

    # --- Domain rules ---------------------------------------------------------
    DEFAULT_TASK_POINTS: int = 10
    STUDENT_MIN_STANDARD: int = 4
    STUDENT_MAX_STANDARD: int = 12

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


# Singleton-style instance used by the app/tests
settings = Settings()
