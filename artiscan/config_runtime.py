"""Runtime configuration for artiscan - centralized tunables."""

import copy
import os
from typing import Any

from artiscan.utils.logging import logger

DEFAULTS = {
    "http": {
        "threads": 10,
        "head_timeout": 10.0,
        "get_timeout": 60.0,
        "retries": 3,
        "backoff": 0.5,
    },
    "lock": {
        "retries": 1200,
        "interval": 0.1,
    },
    "scan": {
        "poll_interval": 5.0,
        "poll_attempts": 120,
        "post_timeout": 120.0,
    },
    "summary": {
        "max_tree_files": 200,
        "probe_timeout": 5.0,
    },
}


def load_runtime_config() -> dict[str, Any]:
    """
    Load runtime configuration from defaults and environment variables.

    Config priority (highest to lowest):
    1. Environment variables (ARTISCAN_<SECTION>_<KEY>)
    2. Built-in defaults

    Returns:
        Configuration dictionary with merged values
    """

    cfg = copy.deepcopy(DEFAULTS)

    for section in cfg:
        for key in cfg[section]:
            env_var = f"ARTISCAN_{section.upper()}_{key.upper()}"
            if env_var not in os.environ:
                continue
            value = os.environ[env_var]
            default_value = cfg[section][key]
            try:
                if isinstance(default_value, int):
                    cfg[section][key] = int(value)
                elif isinstance(default_value, float):
                    cfg[section][key] = float(value)
                else:
                    cfg[section][key] = value
            except ValueError as e:
                logger.warning(f"Invalid value for environment variable {env_var}: '{value}' - {e}")
                logger.info(f"Using default value: {default_value}")

    return cfg
