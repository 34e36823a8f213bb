"""
This is the main entrypoint command for running the Profile controller
"""
# Standard
from typing import List, Optional
import argparse
import os
import signal
import threading

# Third Party
import yaml

# First Party
import alog

# Local
from .. import config
from ..exceptions import assert_config
from ..policy import DryRunPolicyStore
from ..profiles import build_profile_controller
from ..store import DryRunResourceStore, OpenshiftResourceStore
from .base import CmdBase

log = alog.use_channel("MAIN")


class RunControllerCmd(CmdBase):
    __doc__ = __doc__

    name = "run"

    def __init__(self):
        super().__init__()
        self.stop_event = threading.Event()

    ## Interface ##

    def add_arguments(self, parser: argparse.ArgumentParser):
        runtime_args = parser.add_argument_group("Runtime Configuration")
        runtime_args.add_argument(
            "--resource_dir",
            "-r",
            default=None,
            help="(dry run) Path to a directory of yaml files that should exist in the cluster",
        )

    def run(self, args: argparse.Namespace):
        assert_config(
            args.resource_dir is None
            or (config.dry_run and os.path.isdir(args.resource_dir)),
            "Can only specify --resource_dir with dry run and it must point to a valid directory",
        )

        # Parse pre-populated resources if needed
        resources = self._parse_resource_dir(args.resource_dir)

        if config.dry_run:
            log.info("Running DRY RUN")
            store = DryRunResourceStore(resources=resources)
            controller = build_profile_controller(store, policy_store=DryRunPolicyStore())
        else:  # pragma: no cover
            controller = build_profile_controller(OpenshiftResourceStore())

        # Register the signal handlers to stop the controller
        def do_stop(*_, **__):  # pragma: no cover
            log.info("Received shutdown signal")
            self.stop_event.set()

        if threading.current_thread() is threading.main_thread():
            signal.signal(signal.SIGINT, do_stop)
            signal.signal(signal.SIGTERM, do_stop)

        log.info("Starting controller")
        controller.run(workers=config.controller.workers, stop_event=self.stop_event)

        # All done!
        log.info("SHUTTING DOWN")

    ## Impl ##

    @staticmethod
    def _parse_resource_dir(resource_dir: Optional[str]) -> List[dict]:
        """If given, this will parse all yaml files found in the given directory"""
        all_resources = []
        if resource_dir is not None:
            for fname in sorted(os.listdir(resource_dir)):
                if fname.endswith(".yaml") or fname.endswith(".yml"):
                    resource_path = os.path.join(resource_dir, fname)
                    log.debug3("Reading resource file [%s]", resource_path)
                    with open(resource_path, encoding="utf-8") as handle:
                        all_resources.extend(
                            resource for resource in yaml.safe_load_all(handle) if resource
                        )
        return all_resources
