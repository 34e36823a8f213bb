"""
Print the policy rendered for a profile
"""
# Standard
import argparse
import sys

# First Party
import alog

# Local
from .. import config
from ..policy import render_policy
from .base import CmdBase

log = alog.use_channel("MAIN")


class RenderPolicyCmd(CmdBase):
    __doc__ = __doc__

    name = "render-policy"

    ## Interface ##

    def add_arguments(self, parser: argparse.ArgumentParser):
        policy_args = parser.add_argument_group("Policy Configuration")
        policy_args.add_argument(
            "--profile",
            "-p",
            required=True,
            help="The profile to render the policy for",
        )
        policy_args.add_argument(
            "--store",
            "-s",
            action="append",
            default=None,
            help="Backing store granted read access. May be repeated. Defaults to vault.minio_instances",
        )
        policy_args.add_argument(
            "--storage-path",
            default=None,
            dest="storage_path",
            help="The KV path granted full access. Defaults to kv_<profile>",
        )

    def run(self, args: argparse.Namespace):
        stores = args.store if args.store is not None else config.vault.minio_instances
        log.debug("Rendering policy for %s with stores %s", args.profile, stores)
        sys.stdout.write(render_policy(args.profile, stores, args.storage_path))
