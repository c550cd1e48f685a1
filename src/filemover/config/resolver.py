"""
Configuration placeholder resolution.

Substitutes ${VAR_NAME} (or ${VAR_NAME:-default}) from the process environment and the {env}
placeholder. Routing templates keep their own {tenant_id}-style
placeholders; only {env} is touched here.
"""

import os
import re
from typing import Any

_ENV_VAR = re.compile(r"\${([^}]+)}")


def resolve_config(config_data: dict[str, Any], env: str = "dev") -> dict[str, Any]:
    """
    Resolve configuration with environment variable substitution.

    Unset variables are left verbatim so validation can point at them.

    Args:
        config_data: Configuration dictionary
        env: Current environment name

    Returns:
        Resolved configuration
    """
    return _resolve_value(config_data, env)


def _substitute(match: re.Match) -> str:
    name, sep, default = match.group(1).partition(":-")
    value = os.getenv(name)
    if value is not None:
        return value
    return default if sep else match.group(0)


def _resolve_value(value: Any, env: str) -> Any:
    if isinstance(value, dict):
        return {k: _resolve_value(v, env) for k, v in value.items()}
    elif isinstance(value, list):
        return [_resolve_value(item, env) for item in value]
    elif isinstance(value, str):
        result = _ENV_VAR.sub(_substitute, value)
        return result.replace("{env}", env)
    else:
        return value
