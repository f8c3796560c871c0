"""Configuration helpers for the Prompt Gallery project."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

DEFAULT_BASE_URL = "https://api.replicate.com/v1"
DEFAULT_MODEL = "black-forest-labs/flux-schnell"


@dataclass(slots=True)
class AppConfig:
    """Centralized application configuration."""

    data_dir: Path = Path("data")
    download_dir: Path = Path("downloads")
    log_dir: Path = Path("logs")
    gallery_key: str = "gallery.json"
    credential_key: str = "replicate_api_key"
    default_api_key: Optional[str] = None
    replicate_base_url: str = DEFAULT_BASE_URL
    replicate_model: str = DEFAULT_MODEL
    poll_interval: float = 1.0
    request_timeout: Optional[float] = None
    prompt_preview_length: int = 50
    metadata: dict[str, Any] = field(default_factory=dict)


def _load_env_file(path: Path) -> None:
    """Populate environment variables from a simple KEY=VALUE .env file."""
    if not path.exists():
        return

    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ[key.strip()] = value.strip()


def _float_env(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Return an AppConfig instance with environment-aware settings."""
    env_path = Path(config_path) if config_path else Path(".env")
    _load_env_file(env_path)

    data_dir = Path(os.getenv("DATA_DIR", "data")).expanduser().resolve()
    download_dir = Path(os.getenv("DOWNLOAD_DIR", "downloads")).expanduser().resolve()

    api_key = os.getenv("REPLICATE_API_TOKEN") or os.getenv("REPLICATE_API_KEY")
    base_url = os.getenv("REPLICATE_BASE_URL") or DEFAULT_BASE_URL
    model = os.getenv("REPLICATE_MODEL") or DEFAULT_MODEL

    poll_interval = _float_env("REPLICATE_POLL_INTERVAL", 1.0)
    timeout = _float_env("REPLICATE_TIMEOUT", None)

    metadata: dict[str, Any] = {
        "env_file": str(env_path),
        "api_key_source": "env" if api_key else "none",
    }
    return AppConfig(
        data_dir=data_dir,
        download_dir=download_dir,
        default_api_key=api_key,
        replicate_base_url=base_url.rstrip("/"),
        replicate_model=model,
        poll_interval=poll_interval if poll_interval and poll_interval > 0 else 1.0,
        request_timeout=timeout,
        metadata=metadata,
    )
