"""
Base class for all profile_controller commands. A command owns its subparser
and the library config flags attached to it, and applies those flags to the
library config before it runs.
"""

# Standard
from typing import Any, Dict, Iterator, List, Tuple
import abc
import argparse

# First Party
import aconfig
import alog

# Local
from .. import config
from ..config import library_config, validate_library_config
from ..log_format import ControllerJsonFormatter

log = alog.use_channel("CMD")

# Maps an argparse dest to the path of the config key it overrides
ConfigSetters = Dict[str, List[str]]


## Library Config Flags ########################################################


def _config_leaves(config_obj, path: List[str]) -> Iterator[Tuple[List[str], Any]]:
    for key, val in config_obj.items():
        if isinstance(val, aconfig.AttributeAccessDict):
            yield from _config_leaves(val, path + [key])
        else:
            yield path + [key], val


def _flag_kwargs(default: Any) -> dict:
    """argparse handling for a flag, picked from the config default"""
    if isinstance(default, list):
        return {"nargs": "*"}
    if isinstance(default, bool):
        return {"action": "store_true"}
    # Unset keys in the library config are all optional numbers
    return {"type": type(default) if default is not None else float}


def add_library_config_args(parser, config_obj=None) -> ConfigSetters:
    """Add a --dotted.key flag for every leaf of the library config that the
    parser does not define already

    Args:
        parser:  argparse.ArgumentParser or argument group
            Where the flags are added
        config_obj:  Optional[aconfig.Config]
            The config to mirror. Defaults to the library config

    Returns:
        setters:  ConfigSetters
            The config key path for each added dest
    """
    config_obj = config_obj if config_obj is not None else library_config
    setters = {}
    for key_path, default in _config_leaves(config_obj, []):
        dotted = ".".join(key_path)
        if f"--{dotted}" in parser._option_string_actions:  # pylint: disable=protected-access
            continue
        dest = "_".join(key_path)
        parser.add_argument(
            f"--{dotted}",
            dest=dest,
            default=default,
            help=f"Library config override for {dotted} (see profile_controller.config)",
            **_flag_kwargs(default),
        )
        setters[dest] = key_path
    return setters


def apply_library_config_args(args: argparse.Namespace, setters: ConfigSetters):
    """Write the parsed flag values into the library config"""
    for dest, key_path in setters.items():
        section = library_config
        for part in key_path[:-1]:
            section = section[part]
        section[key_path[-1]] = getattr(args, dest)


## Commands ####################################################################


class CmdBase(abc.ABC):
    """A subcommand of the profile_controller executable. Subclasses name the
    command, add their own arguments and implement run. The library config
    flags are added to every command and applied by execute before run.
    """

    name: str = None

    def __init__(self):
        self.config_setters: ConfigSetters = {}

    def register(self, subparsers: argparse._SubParsersAction) -> argparse.ArgumentParser:
        """Add this command's subparser to the main parser

        Args:
            subparsers:  argparse._SubParsersAction
                The subparser section of the main parser

        Returns:
            parser:  argparse.ArgumentParser
                The parser for this command, usable on its own
        """
        parser = subparsers.add_parser(self.name, help=self.__doc__)
        self.add_arguments(parser)
        self.config_setters = add_library_config_args(
            parser.add_argument_group("Library Configuration")
        )
        parser.set_defaults(handler=self)
        return parser

    def execute(self, args: argparse.Namespace):
        """Apply the config flags, reconfigure logging and run"""
        apply_library_config_args(args, self.config_setters)
        validate_library_config()
        alog.configure(
            default_level=config.log_level,
            filters=config.log_filters,
            formatter=ControllerJsonFormatter() if config.log_json else "pretty",
            thread_id=config.log_thread_id,
        )
        log.debug2("Running command [%s]", self.name)
        self.run(args)

    @abc.abstractmethod
    def add_arguments(self, parser: argparse.ArgumentParser):
        """Add the arguments specific to this command"""

    @abc.abstractmethod
    def run(self, args: argparse.Namespace):
        """Execute the command with the parsed arguments"""
