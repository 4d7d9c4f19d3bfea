"""Configuration management for the SoW interview service."""

import os
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Project paths (two levels up from sow_server/core/ -> repository root)
PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _resolve_path(env_name: str, default: Path) -> Path:
    value = os.getenv(env_name)
    if value:
        return Path(value).expanduser().resolve()
    return default.resolve()


def _ensure_dirs(paths: Iterable[Path]) -> None:
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def _env_list(name: str) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return []
    values = []
    for item in raw.split(","):
        cleaned = item.strip()
        if cleaned:
            values.append(cleaned)
    # Preserve order while removing duplicates
    seen = set()
    unique: List[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            unique.append(value)
    return unique


def _env_choice(name: str, default: str, allowed: Tuple[str, ...]) -> str:
    value = os.getenv(name, default)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized not in allowed:
        return default
    return normalized


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


AUTH_PROVIDER = _env_choice("AUTH_PROVIDER", "local", ("local", "supabase"))
STORAGE_PROVIDER = _env_choice("STORAGE_PROVIDER", "local", ("local", "supabase"))

# Shared data root for uploads and the default SQLite database when running locally
DATA_ROOT = _resolve_path("SOW_DATA_ROOT", PROJECT_ROOT / "data")
PROJECTS_DATA_DIR = DATA_ROOT / "projects"

# Model configuration
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
CLAUDE_MODEL = os.getenv("CLAUDE_MODEL", "claude-3-5-haiku-latest")
MODEL_TIMEOUT_SECONDS = float(os.getenv("MODEL_TIMEOUT_SECONDS", "120"))
QUESTION_MAX_TOKENS = _env_int("QUESTION_MAX_TOKENS", 1000)
DOCUMENT_MAX_TOKENS = _env_int("DOCUMENT_MAX_TOKENS", 8000)
TEMPERATURE = float(os.getenv("TEMPERATURE", "0.7"))

# Interview and generation behaviour
INTERVIEW_HARD_CAP = 8  # one answer per fallback bank entry
CONTEXT_DOC_BYTE_CAP = _env_int("CONTEXT_DOC_BYTE_CAP", 10 * 1024)
CONTEXT_TOTAL_BYTE_CAP = _env_int("CONTEXT_TOTAL_BYTE_CAP", 0)  # 0 disables the global cap
GENERATION_WORKERS = _env_int("GENERATION_WORKERS", 2)
GENERATION_ESTIMATE_SECONDS = _env_int("GENERATION_ESTIMATE_SECONDS", 120)

# Bearer token configuration (local auth provider)
SESSION_SECRET = os.getenv("SESSION_SECRET", "change-me")
ACCESS_TOKEN_MAX_AGE = _env_int("ACCESS_TOKEN_MAX_AGE", 60 * 60 * 24)

# Supabase configuration (optional; used when providers set to supabase)
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
SUPABASE_BUCKET = os.getenv("SUPABASE_BUCKET", "sow-documents")


_default_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
CORS_ALLOW_ORIGINS = _env_list("CORS_ALLOW_ORIGINS") or _default_cors_origins
CORS_ALLOW_CREDENTIALS = _env_flag("CORS_ALLOW_CREDENTIALS", "true")


def _normalise_database_dsn(raw: Optional[str]) -> Optional[str]:
    if not raw:
        return None

    cleaned = raw.replace("postgres://", "postgresql://", 1)

    needs_ssl = (
        STORAGE_PROVIDER == "supabase"
        or AUTH_PROVIDER == "supabase"
        or ("supabase" in cleaned)
    )
    if needs_ssl and cleaned.startswith("postgresql") and "sslmode" not in cleaned:
        separator = "&" if "?" in cleaned else "?"
        cleaned = f"{cleaned}{separator}sslmode=require"

    return cleaned


def _sqlalchemy_driver_dsn(raw: Optional[str]) -> Optional[str]:
    if not raw:
        return None
    if raw.startswith("postgresql+psycopg2"):
        return raw.replace("+psycopg2", "+psycopg", 1)
    if raw.startswith("postgresql+psycopg"):
        return raw
    if raw.startswith("postgresql://"):
        return raw.replace("postgresql://", "postgresql+psycopg://", 1)
    return raw


# Database configuration (Postgres in production; SQLite file for local runs)
DATABASE_DSN = _sqlalchemy_driver_dsn(
    _normalise_database_dsn(
        os.getenv("DATABASE_DSN") or os.getenv("APP_DATABASE_DSN") or os.getenv("POSTGRES_DSN")
    )
) or f"sqlite:///{DATA_ROOT / 'sow.db'}"


def ensure_storage_dirs() -> None:
    """Ensure all required on-disk directories are present when using local storage."""

    if STORAGE_PROVIDER != "local":
        return

    _ensure_dirs((DATA_ROOT, PROJECTS_DATA_DIR))
