import os
import re
import yaml
from pathlib import Path
from typing import Any, Dict
from reloadctl.core.errors import ConfigurationError

ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]+))?\}")

ALLOWED_KEYS = {"reloadctl", "controller"}

def interpolate_env_vars(content: str) -> str:
    """Replace ${VAR} or ${VAR:default} with environment variables."""
    def replace_match(match: re.Match) -> str:
        var_name = match.group(1)
        default_value = match.group(2) if match.group(2) is not None else ""
        return os.environ.get(var_name, default_value)

    return ENV_VAR_PATTERN.sub(replace_match, content)

def load_config(path: Path) -> Dict[str, Any]:
    """
    Load reloadctl.yaml with environment variable interpolation.

    Only the 'reloadctl' and 'controller' sections are kept. A missing file is
    an empty configuration; an unreadable or malformed one is an error.
    """
    if not path.exists():
        return {}

    try:
        content = path.read_text()
        full_config = yaml.safe_load(interpolate_env_vars(content)) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Invalid configuration file {path}: {e}") from e

    if not isinstance(full_config, dict):
        raise ConfigurationError(f"Invalid configuration file {path}: expected a mapping at top level.")

    return {k: v for k, v in full_config.items() if k in ALLOWED_KEYS}
