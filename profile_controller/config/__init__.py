"""
Base controller config module. Every value here can be overridden with an
environment variable or a command line flag.
"""

# Local
from .config import library_config, validate_library_config


# Define __getattr__ on this module to delegate to the library config.
def __getattr__(name):
    if name in library_config or hasattr({}, name):
        return getattr(library_config, name)
    raise AttributeError(f"No such config attribute {name}")


# Only expose the library config keys
__all__ = list(library_config.keys())
