"""Feed router configuration from YAML file.

Loads from config/config.yaml with all settings in one place:
- Polling intervals for the pool, term, reclaim and stats loops
- Worker pool policy (assignable lifecycle states, sentinel worker)
- Local collaborator sources (terms file, worker inventory file, dummy feed)
- Health and metrics endpoints

Environment variables ARE supported using ${VAR_NAME} syntax in YAML files.
"""

import json
import logging
import os
import re
import sys
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from core.errors import ConfigurationError

# Configure module logger
logger = logging.getLogger(__name__)


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file and return dict."""
    if not path.exists():
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR_NAME} and ${VAR_NAME:-default} environment variables in config data."""
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    elif isinstance(data, str):
        # Support both ${VAR} and ${VAR:-default} syntax
        pattern = r"\$\{([^}:]+)(?::-(([^}]*))?)?\}"

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else match.group(0)
            return os.getenv(var_name, default_value)

        return re.sub(pattern, replacer, data)
    else:
        return data


# Default config file: config/config.yaml in src/ directory
DEFAULT_CONFIG_FILE = Path(__file__).parent.parent / "config" / "config.yaml"

INTERVAL_KEYS = (
    "worker_refresh_seconds",
    "term_poll_seconds",
    "reclaim_seconds",
    "stats_seconds",
)


@dataclass
class RouterConfig:
    """Feed router configuration.

    Configuration structure:
        feedrouter:
          intervals: {...}        # Loop intervals in seconds (positive integers)
          pool: {...}             # Assignable states, sentinel worker
          sources: {...}          # Terms file, worker inventory file
          feed: {...}             # Dummy feed settings (dev mode)
          health: {...}           # Health server port
          metrics: {...}          # Prometheus port

    All timing values in seconds.
    """

    # =========================================================================
    # LOOP INTERVALS
    # =========================================================================
    worker_refresh_seconds: int = 30
    term_poll_seconds: int = 10
    reclaim_seconds: int = 60
    stats_seconds: int = 10

    # =========================================================================
    # POOL POLICY
    # =========================================================================
    assignable_states: List[str] = field(default_factory=lambda: ["RUNNING", "CREATING"])
    sentinel_worker: str = "default"

    # =========================================================================
    # LOCAL SOURCES
    # =========================================================================
    terms_file: str = "terms.yaml"
    workers_file: str = "workers.yaml"

    # =========================================================================
    # DUMMY FEED (dev mode only)
    # =========================================================================
    feed: Dict[str, Any] = field(default_factory=dict)

    # =========================================================================
    # OBSERVABILITY
    # =========================================================================
    health_port: Optional[int] = 8080
    metrics_port: Optional[int] = 8000

    def intervals(self) -> Dict[str, int]:
        """Loop name -> interval in seconds."""
        return {key: getattr(self, key) for key in INTERVAL_KEYS}

    def validate(self) -> None:
        """Validate configuration for correctness and constraints.

        Every loop interval must be a positive integer; non-positive values
        would make a loop spin or never fire.
        """
        for key in INTERVAL_KEYS:
            value = getattr(self, key)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(
                    f"intervals.{key} must be a positive integer, got {value!r}"
                )
            if value <= 0:
                raise ConfigurationError(
                    f"intervals.{key} must be > 0, got {value}"
                )

        if not self.assignable_states:
            raise ConfigurationError("pool.assignable_states must list at least one state")

        if not self.sentinel_worker or not str(self.sentinel_worker).strip():
            raise ConfigurationError("pool.sentinel_worker cannot be empty")

        for key in ("health_port", "metrics_port"):
            port = getattr(self, key)
            if port is not None and not (0 <= int(port) <= 65535):
                raise ConfigurationError(f"{key} must be between 0 and 65535, got {port}")

        rate = self.feed.get("events_per_minute")
        if rate is not None and float(rate) <= 0:
            raise ConfigurationError(f"feed.events_per_minute must be > 0, got {rate}")


def _deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge overlay into base dict."""
    result = base.copy()
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _coerce_interval(value: Any) -> Any:
    """Turn numeric strings (from ${VAR} expansion) into ints; leave anything else for validate()."""
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return value


def _coerce_port(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def load_config(
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> RouterConfig:
    """Load router configuration from config.yaml file.

    Relative source paths (terms_file, workers_file) are resolved against
    the directory holding the config file.

    Environment variables ARE supported using ${VAR_NAME} syntax in YAML files.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_FILE

    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path}\n" f"Expected file: config/config.yaml"
        )

    logger.info(f"Loading configuration from file: {config_path}")
    yaml_data = load_yaml(config_path)
    yaml_data = _expand_env_vars(yaml_data)

    if "feedrouter" not in yaml_data:
        raise ConfigurationError(
            "Invalid config file: missing 'feedrouter:' section\n"
            "See config.yaml for correct structure"
        )

    router_config = yaml_data["feedrouter"] or {}

    if overrides:
        logger.debug(f"Applying overrides: {list(overrides.keys())}")
        router_config = _deep_merge(router_config, overrides)

    intervals = router_config.get("intervals", {})
    pool = router_config.get("pool", {})
    sources = router_config.get("sources", {})
    health = router_config.get("health", {})
    metrics = router_config.get("metrics", {})

    base_dir = config_path.parent

    def _resolve(path_value: str) -> str:
        path = Path(path_value)
        return str(path if path.is_absolute() else base_dir / path)

    defaults = RouterConfig()
    config = RouterConfig(
        worker_refresh_seconds=_coerce_interval(
            intervals.get("worker_refresh_seconds", defaults.worker_refresh_seconds)
        ),
        term_poll_seconds=_coerce_interval(
            intervals.get("term_poll_seconds", defaults.term_poll_seconds)
        ),
        reclaim_seconds=_coerce_interval(
            intervals.get("reclaim_seconds", defaults.reclaim_seconds)
        ),
        stats_seconds=_coerce_interval(
            intervals.get("stats_seconds", defaults.stats_seconds)
        ),
        assignable_states=[
            str(state).upper() for state in pool.get("assignable_states", defaults.assignable_states)
        ],
        sentinel_worker=str(pool.get("sentinel_worker", defaults.sentinel_worker)),
        terms_file=_resolve(sources.get("terms_file", defaults.terms_file)),
        workers_file=_resolve(sources.get("workers_file", defaults.workers_file)),
        feed=router_config.get("feed", {}) or {},
        health_port=_coerce_port(health.get("port", defaults.health_port)),
        metrics_port=_coerce_port(metrics.get("port", defaults.metrics_port)),
    )

    logger.debug("Configuration loaded successfully:")
    logger.debug(f"  - Intervals: {config.intervals()}")
    logger.debug(f"  - Assignable states: {config.assignable_states}")

    logger.debug("Validating configuration...")
    config.validate()
    logger.debug("Configuration validation passed")

    return config


_router_config: Optional[RouterConfig] = None


def get_config() -> RouterConfig:
    """Get or load the singleton router config instance."""
    global _router_config
    if _router_config is None:
        _router_config = load_config()
    return _router_config


def set_config(config: RouterConfig) -> None:
    """Set the singleton router config instance (useful for testing)."""
    global _router_config
    _router_config = config


def reset_config() -> None:
    """Reset the singleton config instance (forces reload on next get_config() call)."""
    global _router_config
    _router_config = None


def _cli_main() -> int:
    """CLI entry point for config validation and debugging."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Feed Router Configuration Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Validate configuration
  python -m config.config --validate

  # Show effective configuration
  python -m config.config --show-merged

  # Use custom config file, JSON output for automation
  python -m config.config --config /path/to/config.yaml --validate --json
        """,
    )

    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate configuration structure and intervals",
    )
    parser.add_argument(
        "--show-merged",
        action="store_true",
        help="Display effective configuration",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config.yaml file (default: src/config/config.yaml)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format instead of human-readable",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s: %(message)s",
    )

    if not args.validate and not args.show_merged:
        parser.print_help()
        return 0

    try:
        config = load_config(config_path=args.config)
        output = {}

        if args.validate:
            # Validation happens during load_config(), if we got here it passed
            if args.json:
                output["validation"] = {"passed": True, "errors": []}
            else:
                print("✓ Configuration validation passed")
                for key, seconds in config.intervals().items():
                    print(f"  - {key}: {seconds}s")

        if args.show_merged:
            if args.json:
                output["merged_config"] = asdict(config)
            else:
                print("\nConfiguration:")
                print("=" * 80)
                print(yaml.dump(asdict(config), default_flow_style=False, sort_keys=False))
                print("=" * 80)

        if args.json:
            print(json.dumps(output, indent=2))

        return 0

    except FileNotFoundError as e:
        if args.json:
            print(json.dumps({"error": str(e)}))
        else:
            print(f"✗ Error: {e}", file=sys.stderr)
        return 1

    except ValueError as e:
        if args.json:
            print(json.dumps({"error": str(e)}))
        else:
            print(f"✗ Validation error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(_cli_main())
