"""Configuration management for Breeze.

Configuration Priority Chain (highest to lowest):
1. Command-line arguments (--neo4j-uri, --log-level, etc.)
2. Environment variables (BREEZE_NEO4J_URI, BREEZE_LOG_LEVEL, etc.)
3. Config file (.breezerc, breeze.toml)
4. Built-in defaults

Config files are searched hierarchically:
1. Current directory
2. Parent directories (up to root)
3. User home directory (~/.breezerc or ~/.config/breeze.toml)

Environment Variable Names:
- BREEZE_NEO4J_URI
- BREEZE_NEO4J_USERNAME
- BREEZE_NEO4J_PASSWORD
- BREEZE_NEO4J_DATABASE
- BREEZE_DB_MAX_RETRIES
- BREEZE_DETECT_COMMUNITIES (true/false)
- BREEZE_PROJECTION_NAME
- BREEZE_LOG_LEVEL (or LOG_LEVEL)
- BREEZE_LOG_FORMAT (or LOG_FORMAT)
- BREEZE_LOG_FILE (or LOG_FILE)
- BREEZE_API_HOST
- BREEZE_API_PORT

Example .breezerc (YAML):
```yaml
database:
  uri: bolt://localhost:7687
  username: neo4j
  password: ${NEO4J_PASSWORD}
  database: neo4j

communities:
  enabled: true
  projection_name: breeze-imports
  max_levels: 10

logging:
  level: INFO
  format: human
```

Example breeze.toml:
```toml
[database]
uri = "bolt://localhost:7687"
username = "neo4j"
password = "${NEO4J_PASSWORD}"
database = "neo4j"

[communities]
enabled = true
projection_name = "breeze-imports"

[logging]
level = "INFO"
format = "human"
```
"""

import json
import os
import re
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from breeze.logging_config import get_logger

logger = get_logger(__name__)

CONFIG_FILE_NAME = ".breezerc"
TOML_FILE_NAME = "breeze.toml"


class ConfigError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""
    pass


@dataclass
class DatabaseConfig:
    """Neo4j connection configuration."""
    uri: str = "bolt://localhost:7687"
    username: str = "neo4j"
    password: Optional[str] = None
    database: str = "neo4j"
    max_retries: int = 3
    retry_backoff_factor: float = 2.0  # Exponential backoff multiplier
    retry_base_delay: float = 1.0  # Base delay in seconds
    max_connection_pool_size: int = 50
    connection_timeout: float = 30.0
    encrypted: bool = False


@dataclass
class CommunityConfig:
    """Louvain community detection configuration."""
    enabled: bool = True
    projection_name: str = "breeze-imports"
    max_levels: int = 10
    tolerance: float = 0.0001


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "human"  # "human" or "json"
    file: Optional[str] = None


@dataclass
class ApiConfig:
    """Query proxy server configuration."""
    host: str = "127.0.0.1"
    port: int = 4000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


@dataclass
class BreezeConfig:
    """Complete Breeze configuration."""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    communities: CommunityConfig = field(default_factory=CommunityConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    api: ApiConfig = field(default_factory=ApiConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BreezeConfig":
        """Create config from dictionary.

        Args:
            data: Configuration dictionary

        Returns:
            BreezeConfig instance

        Raises:
            ConfigError: If a section contains unknown keys
        """
        data = _expand_env_vars(data or {})

        try:
            return cls(
                database=DatabaseConfig(**data.get("database", {})),
                communities=CommunityConfig(**data.get("communities", {})),
                logging=LoggingConfig(**data.get("logging", {})),
                api=ApiConfig(**data.get("api", {})),
            )
        except TypeError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)


def _expand_env_vars(data: Union[Dict, list, str, Any]) -> Any:
    """Recursively expand environment variables in config data.

    Supports ${VAR_NAME} and $VAR_NAME syntax. Unset variables are left as-is.
    """
    if isinstance(data, dict):
        return {k: _expand_env_vars(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    elif isinstance(data, str):
        pattern = re.compile(r'\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)')

        def replace_var(match):
            var_name = match.group(1) or match.group(2)
            return os.environ.get(var_name, match.group(0))

        return pattern.sub(replace_var, data)
    else:
        return data


def find_config_file(start_dir: Optional[Path] = None) -> Optional[Path]:
    """Find config file using hierarchical search.

    Searches in order:
    1. start_dir (or current directory)
    2. Parent directories up to root
    3. User home directory

    Looks for (in order of preference):
    - .breezerc (YAML/JSON)
    - breeze.toml

    Args:
        start_dir: Starting directory for search (default: current directory)

    Returns:
        Path to config file, or None if not found
    """
    if start_dir is None:
        start_dir = Path.cwd()
    else:
        start_dir = Path(start_dir).resolve()

    current = start_dir
    while True:
        for name in (CONFIG_FILE_NAME, TOML_FILE_NAME):
            candidate = current / name
            if candidate.is_file():
                logger.info(f"Found config file: {candidate}")
                return candidate

        parent = current.parent
        if parent == current:  # Reached root
            break
        current = parent

    home = Path.home()
    for candidate in (home / CONFIG_FILE_NAME, home / ".config" / TOML_FILE_NAME):
        if candidate.is_file():
            logger.info(f"Found config file: {candidate}")
            return candidate

    logger.debug("No config file found")
    return None


def load_config_file(file_path: Path) -> Dict[str, Any]:
    """Load configuration from file.

    Supports:
    - .breezerc (YAML or JSON)
    - *.yaml, *.yml, *.json
    - breeze.toml (TOML)

    Args:
        file_path: Path to config file

    Returns:
        Configuration dictionary

    Raises:
        ConfigError: If file cannot be parsed or format not supported
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise ConfigError(f"Config file not found: {file_path}")

    try:
        content = file_path.read_text()
    except OSError as e:
        raise ConfigError(f"Failed to read config file {file_path}: {e}") from e

    if file_path.name == CONFIG_FILE_NAME or file_path.suffix in [".yaml", ".yml", ".json"]:
        # YAML is a superset of JSON, so one parser covers both
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse {file_path} as YAML or JSON: {e}") from e
        logger.debug(f"Loaded YAML config from {file_path}")
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {file_path} must contain a mapping at the top level")
        return data

    elif file_path.suffix == ".toml":
        try:
            data = tomllib.loads(content)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Failed to parse TOML config {file_path}: {e}") from e
        logger.debug(f"Loaded TOML config from {file_path}")
        return data

    else:
        raise ConfigError(f"Unsupported config file format: {file_path}")


def _env_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def load_config_from_env() -> Dict[str, Any]:
    """Load configuration from environment variables.

    Environment variables take precedence over config files but are
    overridden by command-line arguments.

    Returns:
        Configuration dictionary with values from environment
    """
    config: Dict[str, Any] = {}

    database: Dict[str, Any] = {}
    if uri := os.getenv("BREEZE_NEO4J_URI"):
        database["uri"] = uri
    if username := os.getenv("BREEZE_NEO4J_USERNAME"):
        database["username"] = username
    if password := os.getenv("BREEZE_NEO4J_PASSWORD"):
        database["password"] = password
    if db_name := os.getenv("BREEZE_NEO4J_DATABASE"):
        database["database"] = db_name
    if max_retries := os.getenv("BREEZE_DB_MAX_RETRIES"):
        try:
            database["max_retries"] = int(max_retries)
        except ValueError:
            logger.warning(f"Invalid BREEZE_DB_MAX_RETRIES value: {max_retries}, ignoring")
    if database:
        config["database"] = database

    communities: Dict[str, Any] = {}
    if enabled := os.getenv("BREEZE_DETECT_COMMUNITIES"):
        communities["enabled"] = _env_bool(enabled)
    if projection_name := os.getenv("BREEZE_PROJECTION_NAME"):
        communities["projection_name"] = projection_name
    if communities:
        config["communities"] = communities

    logging_cfg: Dict[str, Any] = {}
    if level := os.getenv("BREEZE_LOG_LEVEL") or os.getenv("LOG_LEVEL"):
        logging_cfg["level"] = level.upper()
    if fmt := os.getenv("BREEZE_LOG_FORMAT") or os.getenv("LOG_FORMAT"):
        logging_cfg["format"] = fmt
    if file := os.getenv("BREEZE_LOG_FILE") or os.getenv("LOG_FILE"):
        logging_cfg["file"] = file
    if logging_cfg:
        config["logging"] = logging_cfg

    api: Dict[str, Any] = {}
    if host := os.getenv("BREEZE_API_HOST"):
        api["host"] = host
    if port := os.getenv("BREEZE_API_PORT"):
        try:
            api["port"] = int(port)
        except ValueError:
            logger.warning(f"Invalid BREEZE_API_PORT value: {port}, ignoring")
    if api:
        config["api"] = api

    return config


def _deep_merge_dicts(base: Dict, override: Dict) -> Dict:
    """Deep merge two dictionaries (base is not modified)."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge_dicts(result[key], value)
        else:
            result[key] = value

    return result


def load_config(
    config_file: Optional[Union[str, Path]] = None,
    search_path: Optional[Path] = None,
    use_env: bool = True,
) -> BreezeConfig:
    """Load Breeze configuration with fallback chain.

    Args:
        config_file: Explicit path to config file (optional)
        search_path: Starting directory for hierarchical search (default: current dir)
        use_env: Whether to load from environment variables (default: True)

    Returns:
        BreezeConfig instance with merged configuration

    Raises:
        ConfigError: If the config file cannot be loaded
    """
    merged_data: Dict[str, Any] = {}

    config_path = Path(config_file) if config_file else find_config_file(search_path)
    if config_path:
        file_data = load_config_file(config_path)
        logger.info(f"Loaded configuration from {config_path}")
        merged_data = _deep_merge_dicts(merged_data, file_data)

    if use_env:
        env_data = load_config_from_env()
        if env_data:
            logger.debug("Loaded configuration from environment variables")
            merged_data = _deep_merge_dicts(merged_data, env_data)

    return BreezeConfig.from_dict(merged_data)


def generate_config_template(format: str = "yaml") -> str:
    """Generate configuration file template.

    Args:
        format: Template format ("yaml", "json", or "toml")

    Returns:
        Configuration template as string

    Raises:
        ValueError: If format is not supported
    """
    data = BreezeConfig().to_dict()
    data["database"]["password"] = "${NEO4J_PASSWORD}"

    if format == "yaml":
        template = yaml.dump(data, default_flow_style=False, sort_keys=False)
        return f"""# Breeze Configuration File (.breezerc)
#
# Place it in your project root (.breezerc) or home directory (~/.breezerc).
# Environment variables can be referenced using ${{VAR_NAME}} syntax.

{template}"""

    elif format == "json":
        return json.dumps(data, indent=2)

    elif format == "toml":
        lines = [
            "# Breeze Configuration File (breeze.toml)",
            "#",
            "# Environment variables can be referenced using ${VAR_NAME} syntax.",
        ]
        for section, values in data.items():
            lines.append("")
            lines.append(f"[{section}]")
            for key, value in values.items():
                if value is None:
                    continue
                lines.append(f"{key} = {json.dumps(value)}")
        return "\n".join(lines) + "\n"

    else:
        raise ValueError(f"Unsupported format: {format}. Use 'yaml', 'json', or 'toml'")
