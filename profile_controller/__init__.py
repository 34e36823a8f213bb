"""
Package exports
"""

# Local
from . import config, reconcile, status
from .cache import ResourceCache, wait_for_cache_sync
from .controller import Controller
from .events import EventRecorder, NullEventRecorder
from .exceptions import assert_cluster, assert_config
from .managed_object import ManagedObject
from .policy import PolicyConfigurer, render_policy
from .profiles import ProfileReconciler, build_profile_controller
from .reconcile import ChildSpec, Reconciler
from .status import StatusPublisher
from .store import DryRunResourceStore, OpenshiftResourceStore, ResourceStoreBase
from .workqueue import RateLimitingQueue, WorkQueue
