"""
Loads the packaged library config at import time, checks it against its
constraints and does the initial log config
"""

# Standard
from typing import Optional
import os

# First Party
import aconfig
import alog

# Local
from ..exceptions import assert_config
from .validation import get_invalid_params

# Both files are packaged beside this module
CONFIG_FILE = os.path.join(os.path.dirname(__file__), "config.yaml")
VALIDATION_FILE = os.path.join(os.path.dirname(__file__), "config_validation.yaml")

# Values may be overridden from the environment but the constraints may not
library_config = aconfig.Config.from_yaml(CONFIG_FILE, override_env_vars=True)
validation_config = aconfig.Config.from_yaml(VALIDATION_FILE, override_env_vars=False)


def validate_library_config(config_obj: Optional[aconfig.Config] = None):
    """Raise a ConfigError listing every key that breaks its constraint. The
    loaded library config is checked when no config is given.
    """
    config_obj = library_config if config_obj is None else config_obj
    invalid_params = get_invalid_params(config_obj, validation_config)
    assert_config(
        not invalid_params,
        f"Library configuration found invalid values: {invalid_params}",
    )


validate_library_config()

alog.configure(
    default_level=library_config.log_level,
    filters=library_config.log_filters,
    formatter="json" if library_config.log_json else "pretty",
    thread_id=library_config.log_thread_id,
)
