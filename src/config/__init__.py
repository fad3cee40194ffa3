"""Configuration loading for the feed router.

Configuration is loaded from a single config/config.yaml file with a
top-level ``feedrouter:`` section.

Main Functions
--------------

    - load_config(): Load router configuration from YAML
    - get_config(): Get or load singleton router config instance
    - set_config(): Replace the singleton (tests)
    - reset_config(): Reset singleton config instance

Usage Examples
--------------

    >>> from config import get_config
    >>> config = get_config()
    >>> config.term_poll_seconds
    10

Custom config path:
    >>> from pathlib import Path
    >>> config = load_config(config_path=Path("/custom/path/config.yaml"))

Configuration Priority
---------------------

1. ``overrides`` passed to load_config() (deep-merged)
2. YAML configuration (with ${VAR} / ${VAR:-default} expansion)
3. Dataclass defaults
"""

from config.config import (
    RouterConfig,
    get_config,
    load_config,
    reset_config,
    set_config,
)

__all__ = [
    "load_config",
    "get_config",
    "set_config",
    "reset_config",
    "RouterConfig",
]
