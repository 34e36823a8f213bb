#!/usr/bin/env python
"""
The main module provides the executable entrypoint for the Profile controller
"""

# Standard
from typing import List, Optional
import argparse
import sys

# First Party
import alog

# Local
from .cmd import RenderPolicyCmd, RunControllerCmd

log = alog.use_channel("MAIN")

# Runs when the first argument does not name a command
DEFAULT_COMMAND = RunControllerCmd.name


def main(argv: Optional[List[str]] = None):
    """Parse the command line and run the selected command. Without a command
    name the controller is run.
    """
    argv = sys.argv[1:] if argv is None else argv
    parser = argparse.ArgumentParser(description=__doc__)
    subparsers = parser.add_subparsers(help="Available commands", dest="command")
    command_parsers = {
        cmd.name: cmd.register(subparsers)
        for cmd in (RunControllerCmd(), RenderPolicyCmd())
    }

    if argv and (argv[0] in command_parsers or argv[0] in ("-h", "--help")):
        args = parser.parse_args(argv)
    else:
        log.debug2("No command given, running [%s]", DEFAULT_COMMAND)
        args = command_parsers[DEFAULT_COMMAND].parse_args(argv)
    args.handler.execute(args)


if __name__ == "__main__":  # pragma: no cover
    main()
