"""
Assistify Configuration Loader

Reads ``assistify.yaml`` and expands environment references before the
values reach AppConfig:

- ``${NAME}`` must be set in the environment
- ``${NAME:-fallback}`` uses ``fallback`` when NAME is unset

Both mapping keys and values are expanded, so API keys can live in the
environment:

```yaml
storage:
  path: "${ASSISTIFY_DB:-./data/audit.db}"
auth:
  api_keys:
    "${ASSISTIFY_ADMIN_KEY}":
      actor_id: 1
```
"""

import os
import re
from pathlib import Path
from typing import Any, Iterator, Optional, Union
import logging

import yaml

from .schema import AppConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "assistify.yaml"

# Explicit config file location, checked before any directory search
CONFIG_ENV_VAR = "ASSISTIFY_CONFIG"

ENV_VAR_PATTERN = re.compile(r'\$\{([^}:]+)(?::-([^}]*))?\}')

PathLike = Union[str, Path]


def _expand(match: "re.Match[str]") -> str:
    name, fallback = match.group(1), match.group(2)
    if name in os.environ:
        return os.environ[name]
    if fallback is not None:
        return fallback
    raise KeyError(
        f"Environment variable '{name}' is required but not set. "
        f"Set it or provide a default: ${{{name}:-default}}"
    )


def interpolate_env_vars(value: Any) -> Any:
    """
    Expand ``${...}`` references throughout a parsed YAML document.

    Raises:
        KeyError: a ``${NAME}`` reference without fallback is unset
    """
    if isinstance(value, str):
        return ENV_VAR_PATTERN.sub(_expand, value)
    if isinstance(value, dict):
        return {interpolate_env_vars(k): interpolate_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [interpolate_env_vars(item) for item in value]
    return value


def load_config_from_file(config_path: PathLike, interpolate: bool = True) -> AppConfig:
    """
    Parse one configuration file.

    Relative paths inside the file resolve against the file's directory
    unless the file sets ``working_dir`` itself.

    Raises:
        FileNotFoundError: the file does not exist
        ValueError: the document is not a mapping
        KeyError: a required environment variable is unset
        yaml.YAMLError: malformed YAML
    """
    config_path = Path(config_path)
    if not config_path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration from {config_path}")
    document = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(document, dict):
        raise ValueError(f"{config_path}: expected a mapping at the top level")

    if interpolate:
        try:
            document = interpolate_env_vars(document)
        except KeyError as e:
            logger.error(f"Configuration error in {config_path}: {e}")
            raise

    document.setdefault("working_dir", str(config_path.parent.absolute()))
    return AppConfig.from_dict(document)


def candidate_paths(working_dir: Optional[PathLike] = None) -> Iterator[Path]:
    """Places searched for a config file, in priority order"""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        yield Path(env_path)

    roots = [Path(working_dir)] if working_dir else []
    roots.append(Path.cwd())
    for root in roots:
        yield root / CONFIG_FILENAME
        yield root / "config" / CONFIG_FILENAME


def load_config(
    config_path: Optional[PathLike] = None,
    working_dir: Optional[PathLike] = None,
) -> AppConfig:
    """
    Load configuration, falling back to defaults.

    Lookup order: ``config_path``, ``$ASSISTIFY_CONFIG``, then
    ``assistify.yaml`` / ``config/assistify.yaml`` under ``working_dir``
    and the current directory.
    """
    if config_path:
        return load_config_from_file(config_path)

    for path in candidate_paths(working_dir):
        if path.is_file():
            logger.info(f"Found configuration at {path}")
            return load_config_from_file(path)

    logger.info(f"No {CONFIG_FILENAME} found, using default configuration")
    return AppConfig(working_dir=Path(working_dir) if working_dir else Path.cwd())
