"""Configuration loading from environment variables and chronofact.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_DEFAULT_HOME = Path.home() / ".chronofact"
_CONFIG_FILENAME = "chronofact.toml"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class StoreConfig:
    """Behavior of a TemporalStore instance."""

    auto_invalidate: bool = False


@dataclass
class ChronofactConfig:
    """Top-level configuration."""

    store: StoreConfig = field(default_factory=StoreConfig)
    patch_log: Path = _DEFAULT_HOME / "patches.jsonl"
    entities_dir: Path = _DEFAULT_HOME / "entities"
    log_level: str = "INFO"


def _as_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def load_config(config_path: Path | None = None) -> ChronofactConfig:
    """Load configuration from environment variables and optional chronofact.toml.

    Priority: environment variables > chronofact.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.chronofact/
        for candidate in [Path.cwd() / _CONFIG_FILENAME, _DEFAULT_HOME / _CONFIG_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    store_data = file_data.get("store", {})

    config = ChronofactConfig(
        store=StoreConfig(
            auto_invalidate=_as_bool(
                os.getenv(
                    "CHRONOFACT_AUTO_INVALIDATE", store_data.get("auto_invalidate", False)
                )
            ),
        ),
        patch_log=Path(
            os.getenv(
                "CHRONOFACT_PATCH_LOG",
                file_data.get("patch_log", str(_DEFAULT_HOME / "patches.jsonl")),
            )
        ),
        entities_dir=Path(
            os.getenv(
                "CHRONOFACT_ENTITIES_DIR",
                file_data.get("entities_dir", str(_DEFAULT_HOME / "entities")),
            )
        ),
        log_level=os.getenv("CHRONOFACT_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
    return config
