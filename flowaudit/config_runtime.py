"""Runtime configuration for flowaudit - centralized configuration management."""

import copy
import json
import os
from pathlib import Path
from typing import Any

from flowaudit.utils.constants import CONFIG_FILE_NAME, ENV_PREFIX
from flowaudit.utils.logging import logger

DEFAULTS = {
    "paths": {
        "state_dir": "./.flowaudit",
        "report_json": "./.flowaudit/report.json",
    },
    "limits": {
        "document_timeout": 30.0,
        "max_workers": 4,
        "snippet_context_lines": 3,
        "max_jobs_for_exhaustive_paths": 200,
    },
    "report": {
        "max_rows": 200,
        "show_info": True,
    },
}


def _coerce(default_value: Any, value: str) -> Any:
    """Convert an environment string to the type of the default it overrides."""
    if isinstance(default_value, bool):
        lowered = value.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ValueError(f"not a boolean: {value!r}")
    if isinstance(default_value, int):
        return int(value)
    if isinstance(default_value, float):
        return float(value)
    if isinstance(default_value, list):
        return [v.strip() for v in value.split(",")]
    return value


# Limits that must be strictly positive; the other limits only non-negative
POSITIVE_LIMITS = ("document_timeout", "max_workers")


def _range_problem(section: str, key: str, value: Any) -> str | None:
    """Why a correctly typed value is out of range, or None when it is usable."""
    if section != "limits" or isinstance(value, bool):
        return None
    if key in POSITIVE_LIMITS and value <= 0:
        return "expected a positive number"
    if value < 0:
        return "expected a non-negative number"
    return None


def load_runtime_config(root: str = ".") -> dict[str, Any]:
    """
    Load runtime configuration from .flowaudit/config.json and environment variables.

    Config priority (highest to lowest):
    1. Environment variables (FLOWAUDIT_<SECTION>_<KEY>)
    2. .flowaudit/config.json file
    3. Built-in defaults

    Args:
        root: Root directory to look for config file

    Returns:
        Configuration dictionary with merged values
    """
    cfg = copy.deepcopy(DEFAULTS)

    path = Path(root) / ".flowaudit" / CONFIG_FILE_NAME
    try:
        if path.exists():
            with open(path, encoding="utf-8") as f:
                user = json.load(f)

            if isinstance(user, dict):
                for section in cfg:
                    if section in user and isinstance(user[section], dict):
                        for key, value in user[section].items():
                            if key not in cfg[section]:
                                logger.warning(f"Unknown config key {section}.{key} in {path}")
                                continue
                            default_value = cfg[section][key]
                            # ints are accepted where floats are expected
                            if isinstance(default_value, float) and isinstance(value, int) and not isinstance(value, bool):
                                value = float(value)
                            if type(value) is not type(default_value):
                                problem = f"expected {type(default_value).__name__}"
                            else:
                                problem = _range_problem(section, key, value)
                            if problem:
                                logger.warning(f"Ignoring {section}.{key}={value!r} from {path}: {problem}")
                            else:
                                cfg[section][key] = value
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Could not load config file from {path}: {e}")
        logger.info("Continuing with default configuration")

    for section in cfg:
        for key in cfg[section]:
            env_var = f"{ENV_PREFIX}_{section.upper()}_{key.upper()}"
            if env_var in os.environ:
                value = os.environ[env_var]
                try:
                    coerced = _coerce(cfg[section][key], value)
                    problem = _range_problem(section, key, coerced)
                    if problem:
                        raise ValueError(problem)
                    cfg[section][key] = coerced
                except (ValueError, AttributeError) as e:
                    logger.warning(f"Invalid value for environment variable {env_var}: '{value}' - {e}")
                    logger.info(f"Using default value: {cfg[section][key]}")

    return cfg


def get_limit(cfg: dict[str, Any], key: str) -> Any:
    """Read a value from the limits section, falling back to the built-in default."""
    return cfg.get("limits", {}).get(key, DEFAULTS["limits"][key])
