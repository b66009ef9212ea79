"""Configuration for Tabby Grabby."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple


DEFAULT_INVALID_URL_PREFIXES: Tuple[str, ...] = (
    "chrome://",
    "chrome-extension://",
    "edge://",
    "about:",
    "moz-extension://",
)


def _prefixes_from_env(raw: Optional[str]) -> Tuple[str, ...]:
    if not raw:
        return DEFAULT_INVALID_URL_PREFIXES
    return tuple(p.strip() for p in raw.split(",") if p.strip())


@dataclass
class BridgeConfig:
    """Configuration for the browser extension bridge."""
    port: int = 8765
    response_timeout: float = 15.0  # Seconds to wait for an extension reply

    @classmethod
    def from_env(cls) -> "BridgeConfig":
        """Create config from environment variables."""
        return cls(
            port=int(os.environ.get("TABBY_BRIDGE_PORT", "8765")),
            response_timeout=float(os.environ.get("TABBY_BRIDGE_TIMEOUT", "15.0")),
        )


@dataclass
class Config:
    """Main configuration for Tabby Grabby."""
    extension_name: str = "Tabby Grabby"
    export_version: str = "1.0.0"
    export_filename_prefix: str = "tabby-grabby-export"
    import_folder_prefix: str = "Tabby Grabby Import"
    # Chrome's "Other bookmarks" node; the container folder lands here
    other_bookmarks_id: str = "2"
    invalid_url_prefixes: Tuple[str, ...] = DEFAULT_INVALID_URL_PREFIXES
    export_dir: Optional[Path] = None  # None = send downloads through the bridge
    history_db_path: Optional[Path] = None  # None = use default
    bridge: BridgeConfig = field(default_factory=BridgeConfig.from_env)

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment variables."""
        export_dir_str = os.environ.get("TABBY_EXPORT_DIR")
        history_db_str = os.environ.get("TABBY_HISTORY_DB")

        return cls(
            extension_name=os.environ.get("TABBY_EXTENSION_NAME", "Tabby Grabby"),
            export_version=os.environ.get("TABBY_EXPORT_VERSION", "1.0.0"),
            import_folder_prefix=os.environ.get("TABBY_IMPORT_FOLDER_PREFIX", "Tabby Grabby Import"),
            other_bookmarks_id=os.environ.get("TABBY_OTHER_BOOKMARKS_ID", "2"),
            invalid_url_prefixes=_prefixes_from_env(os.environ.get("TABBY_INVALID_URL_PREFIXES")),
            export_dir=Path(export_dir_str) if export_dir_str else None,
            history_db_path=Path(history_db_str) if history_db_str else None,
            bridge=BridgeConfig.from_env(),
        )


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global config instance.

    Returns:
        Config loaded from environment
    """
    global _config

    if _config is None:
        _config = Config.from_env()

    return _config
