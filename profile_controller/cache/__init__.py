"""
Watch-driven local mirrors of resource kinds
"""
# Local
from .events import Added, CacheEvent, Deleted, Tombstone, Updated
from .resource_cache import EventHandler, ResourceCache
from .sync import wait_for_cache_sync
