"""
Policy templating and the stores policies are applied to
"""
# Local
from .configurer import PolicyConfigurer
from .store import DryRunPolicyStore, PolicyStoreBase, VaultPolicyStore
from .template import default_storage_path, render_policy
