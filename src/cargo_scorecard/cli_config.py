"""
Configuration management for cargo-scorecard.

Provides the network endpoints, timeouts, lister and output settings used by
the command line interface. The enrichment core receives everything it needs
as arguments and never reads configuration on its own.
"""

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from rich.console import Console

console = Console(stderr=True)

OUTPUT_FORMATS = ("console", "markdown", "json")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class NetworkConfig:
    """Registry and scorecard endpoints plus HTTP client limits."""

    user_agent: str = "cargo-scorecard/0.1.0"
    registry_url: str = "https://crates.io/api/v1/crates"
    scorecard_url: str = "https://api.securityscorecards.dev/projects"
    connect_timeout: float = 10.0
    read_timeout: float = 30.0
    write_timeout: float = 10.0
    pool_timeout: float = 5.0
    max_keepalive_connections: int = 20
    max_connections: int = 100


@dataclass
class ListerConfig:
    """How the cargo dependency tree is obtained."""

    cargo_command: str = "cargo"
    timeout_seconds: float = 120.0


@dataclass
class OutputConfig:
    output_format: str = "console"
    quiet: bool = False
    verbose: bool = False


@dataclass
class LoggingConfig:
    log_level: str = "WARNING"
    enable_json: bool = True


@dataclass
class ScorecardConfig:
    """Main configuration containing all subsections."""

    network: NetworkConfig = field(default_factory=NetworkConfig)
    lister: ListerConfig = field(default_factory=ListerConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_global_config: Optional[ScorecardConfig] = None


def validate_config_values(config: ScorecardConfig) -> List[str]:
    """
    Validate configuration values and return any errors.

    Args:
        config: Configuration to validate

    Returns:
        List[str]: List of validation errors (empty if valid)
    """
    errors = []

    network = config.network
    if not network.user_agent.strip():
        errors.append("network.user_agent must not be empty")
    for name in ("registry_url", "scorecard_url"):
        url = getattr(network, name)
        if not url.startswith(("http://", "https://")):
            errors.append(f"network.{name} must be an http(s) URL")
    for name in ("connect_timeout", "read_timeout", "write_timeout", "pool_timeout"):
        if getattr(network, name) <= 0:
            errors.append(f"network.{name} must be positive")
    if network.max_connections <= 0:
        errors.append("network.max_connections must be positive")
    if network.max_keepalive_connections < 0:
        errors.append("network.max_keepalive_connections must be non-negative")

    if not config.lister.cargo_command.strip():
        errors.append("lister.cargo_command must not be empty")
    if config.lister.timeout_seconds <= 0:
        errors.append("lister.timeout_seconds must be positive")

    if config.output.output_format not in OUTPUT_FORMATS:
        errors.append(f"output.output_format must be one of: {', '.join(OUTPUT_FORMATS)}")

    if config.logging.log_level.upper() not in LOG_LEVELS:
        errors.append(f"logging.log_level must be one of: {', '.join(LOG_LEVELS)}")

    return errors


def load_config_file(config_path: Path) -> Optional[Dict[str, Any]]:
    """Load config from a JSON or YAML file."""
    if not config_path.exists():
        return None

    try:
        with open(config_path, encoding="utf-8") as f:
            if config_path.suffix.lower() in [".yaml", ".yml"]:
                data = yaml.safe_load(f)
            elif config_path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                return None
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(f"⚠️  Error loading config from {config_path}: {e}", style="yellow")
        return None

    if not isinstance(data, dict):
        console.print(
            f"⚠️  Ignoring {config_path}: top level must be a mapping", style="yellow"
        )
        return None
    return data


def find_config_file() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [
        Path.cwd() / ".cargo-scorecard.json",
        Path.cwd() / ".cargo-scorecard.yaml",
        Path.cwd() / ".cargo-scorecard.yml",
        Path.home() / ".config" / "cargo-scorecard" / "config.json",
        Path.home() / ".config" / "cargo-scorecard" / "config.yaml",
    ]

    for location in locations:
        if location.exists():
            return location

    return None


def load_environment_overrides(config: ScorecardConfig) -> None:
    """Apply CARGO_SCORECARD_* environment variables on top of the config."""

    def get_env_float(key: str) -> Optional[float]:
        if key not in os.environ:
            return None
        try:
            return float(os.environ[key])
        except ValueError:
            console.print(f"⚠️  Invalid float value for {key}, using default", style="yellow")
            return None

    if user_agent := os.environ.get("CARGO_SCORECARD_USER_AGENT"):
        config.network.user_agent = user_agent
    if registry_url := os.environ.get("CARGO_SCORECARD_REGISTRY_URL"):
        config.network.registry_url = registry_url
    if scorecard_url := os.environ.get("CARGO_SCORECARD_SCORECARD_URL"):
        config.network.scorecard_url = scorecard_url
    connect_timeout = get_env_float("CARGO_SCORECARD_CONNECT_TIMEOUT")
    if connect_timeout is not None:
        config.network.connect_timeout = connect_timeout
    read_timeout = get_env_float("CARGO_SCORECARD_READ_TIMEOUT")
    if read_timeout is not None:
        config.network.read_timeout = read_timeout

    if cargo_command := os.environ.get("CARGO_SCORECARD_CARGO"):
        config.lister.cargo_command = cargo_command
    lister_timeout = get_env_float("CARGO_SCORECARD_LISTER_TIMEOUT")
    if lister_timeout is not None:
        config.lister.timeout_seconds = lister_timeout

    if log_level := os.environ.get("CARGO_SCORECARD_LOG_LEVEL"):
        config.logging.log_level = log_level.upper()
    if output_format := os.environ.get("CARGO_SCORECARD_OUTPUT_FORMAT"):
        config.output.output_format = output_format.lower()


def apply_config_section(
    config: Any, section_data: Dict[str, Any], section_name: str
) -> None:
    """Apply configuration from dictionary to config section."""
    if not isinstance(section_data, dict):
        console.print(f"⚠️  Config section {section_name} must be a mapping", style="yellow")
        return
    for key, value in section_data.items():
        if not hasattr(config, key):
            console.print(f"⚠️  Unknown config key in {section_name}: {key}", style="yellow")
            continue
        current = getattr(config, key)
        if isinstance(current, float) and isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
        if type(value) is not type(current):
            console.print(
                f"⚠️  Ignoring {section_name}.{key}: expected {type(current).__name__}",
                style="yellow",
            )
            continue
        setattr(config, key, value)


def load_config() -> ScorecardConfig:
    """Load configuration from file and environment."""
    global _global_config

    if _global_config is not None:
        return _global_config

    config = ScorecardConfig()

    config_file = find_config_file()
    if config_file:
        file_config = load_config_file(config_file)
        if file_config:
            for section_name in ("network", "lister", "output", "logging"):
                if section_name in file_config:
                    apply_config_section(
                        getattr(config, section_name),
                        file_config[section_name],
                        section_name,
                    )

    load_environment_overrides(config)

    validation_errors = validate_config_values(config)
    if validation_errors:
        console.print("⚠️  Configuration validation errors:", style="red")
        for error in validation_errors:
            console.print(f"  • {error}", style="red")
        console.print("Using default values for invalid settings.", style="yellow")
        config = _repair_invalid_sections(config)

    _global_config = config
    return config


def _repair_invalid_sections(config: ScorecardConfig) -> ScorecardConfig:
    """Reset every section that fails validation to its defaults."""
    defaults = ScorecardConfig()
    for section_name in ("network", "lister", "output", "logging"):
        candidate = ScorecardConfig(**{**vars(defaults), section_name: getattr(config, section_name)})
        if validate_config_values(candidate):
            setattr(config, section_name, getattr(defaults, section_name))
    return config


def get_config() -> ScorecardConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _global_config
    _global_config = None


def create_sample_config() -> str:
    """Generate a sample configuration file with every default spelled out."""
    return json.dumps(ScorecardConfig().to_dict(), indent=2)
