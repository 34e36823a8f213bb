"""
The Profile controller: Profiles own PodDefaults in their namespace
"""
# Local
from .factory import build_profile_controller
from .pod_defaults import build_pod_default, pod_default_name
from .reconciler import ProfileReconciler
