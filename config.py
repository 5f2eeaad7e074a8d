import logging
import os
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict

from errors import ConfigurationError

logger = logging.getLogger("ark_proxy.config")

# =============================================================================
# Defaults
# =============================================================================

ENV_FILE_NAME = ".env"

DEFAULT_PORT = 3000
DEFAULT_HOST = "0.0.0.0"
DEFAULT_ARK_API_URL = "https://ark.cn-beijing.volces.com/api/v3/responses"
DEFAULT_ARK_MODEL = "doubao-seed-2-0-pro-260215"
DEFAULT_ARK_IMAGE_API_URL = "https://ark.cn-beijing.volces.com/api/v3/images/generations"
DEFAULT_ARK_IMAGE_MODEL = "doubao-seedream-4-5-251128"
DEFAULT_STATIC_DIR = "public"
DEFAULT_INDEX_FILE = "product-generator-orange.html"
DEFAULT_HTTP_TIMEOUT = 60.0


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    ark_api_key: str = ""
    ark_api_url: str = DEFAULT_ARK_API_URL
    ark_model: str = DEFAULT_ARK_MODEL
    ark_image_api_url: str = DEFAULT_ARK_IMAGE_API_URL
    ark_image_model: str = DEFAULT_ARK_IMAGE_MODEL
    static_root: Path = Path(DEFAULT_STATIC_DIR)
    index_file: str = DEFAULT_INDEX_FILE
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    debug: bool = False

    @property
    def proxy_enabled(self) -> bool:
        return bool(self.ark_api_key)


# =============================================================================
# Loading
# =============================================================================

def read_env_file(path: Path) -> Dict[str, str]:
    """Parse a KEY=value override file. Missing file means no overrides."""
    if not path.is_file():
        return {}
    values = dotenv_values(path, interpolate=False, encoding="utf-8")
    # dotenv yields None for lines without "="
    return {k.strip(): v for k, v in values.items() if k and k.strip() and v is not None}


def merge_env(file_values: Mapping[str, str], environ: Mapping[str, str]) -> Dict[str, str]:
    """Environment variables always win over the override file."""
    merged = dict(file_values)
    merged.update(environ)
    return merged


def _parse_int(name: str, raw: Optional[str], default: int) -> int:
    if not raw:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _parse_float(name: str, raw: Optional[str], default: float) -> float:
    if not raw:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def load_settings(root_dir: Path, environ: Optional[Mapping[str, str]] = None) -> Settings:
    root_dir = Path(root_dir)
    file_values = read_env_file(root_dir / ENV_FILE_NAME)
    env = merge_env(file_values, os.environ if environ is None else environ)

    static_dir = Path(env.get("STATIC_DIR") or DEFAULT_STATIC_DIR)
    if not static_dir.is_absolute():
        static_dir = root_dir / static_dir

    settings = Settings(
        port=_parse_int("PORT", env.get("PORT"), DEFAULT_PORT),
        host=env.get("HOST") or DEFAULT_HOST,
        ark_api_key=env.get("ARK_API_KEY") or "",
        ark_api_url=env.get("ARK_API_URL") or DEFAULT_ARK_API_URL,
        ark_model=env.get("ARK_MODEL") or DEFAULT_ARK_MODEL,
        ark_image_api_url=env.get("ARK_IMAGE_API_URL") or DEFAULT_ARK_IMAGE_API_URL,
        ark_image_model=env.get("ARK_IMAGE_MODEL") or DEFAULT_ARK_IMAGE_MODEL,
        static_root=static_dir,
        index_file=env.get("INDEX_FILE") or DEFAULT_INDEX_FILE,
        http_timeout=_parse_float("HTTP_TIMEOUT", env.get("HTTP_TIMEOUT"), DEFAULT_HTTP_TIMEOUT),
        debug=(env.get("DEBUG") or "false").lower() in ("1", "true", "yes"),
    )
    logger.debug("Loaded settings from %s (override file keys: %s)", root_dir, sorted(file_values))
    return settings
