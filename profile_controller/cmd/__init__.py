"""
Import all commands
"""
# Local
from .base import CmdBase
from .render_policy_cmd import RenderPolicyCmd
from .run_controller_cmd import RunControllerCmd
