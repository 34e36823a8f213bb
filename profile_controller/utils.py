"""
Common utilities shared across components in the library
"""

# Standard
from typing import Any, Mapping, Optional, Tuple, Union

# First Party
import alog

# Local
from . import constants
from .exceptions import MalformedItemError

log = alog.use_channel("UTILS")

# Sentinel for missing dict values
__MISSING__ = "__MISSING__"

## Dicts #######################################################################


def merge_configs(base, overrides) -> dict:
    """Helper to perform a deep merge of the overrides into the base. The merge
    is done in place, but the resulting dict is also returned for convenience.

    Args:
        base:  dict
            The base config that will be updated with the overrides
        overrides:  dict
            The override config

    Returns:
        merged:  dict
            The merged results of overrides merged onto base
    """
    for key, value in overrides.items():
        if (
            key not in base
            or not isinstance(base[key], dict)
            or not isinstance(value, dict)
        ):
            base[key] = value
        else:
            base[key] = merge_configs(base[key], value)
    return base


def nested_get(dct: Mapping, key: str, dflt=None) -> Any:
    """Helper to get values from a dict using 'foo.bar' key notation

    Args:
        dct:  Mapping
            The dict to read from
        key:  str
            Key that may contain '.' notation indicating dict nesting

    Returns:
        val:  Any
            Whatever is found at the given key or dflt if the key is not found.
            This includes missing intermediate dicts.
    """
    parts = key.split(constants.NESTED_DICT_DELIM)
    for i, part in enumerate(parts[:-1]):
        dct = dct.get(part, __MISSING__)
        if dct is __MISSING__:
            return dflt
        if not isinstance(dct, Mapping):
            raise TypeError(
                f"Intermediate key {constants.NESTED_DICT_DELIM.join(parts[:i + 1])} is not a dict"
            )
    return dct.get(parts[-1], dflt)


## Keys ########################################################################


def meta_namespace_key(obj: Union[Mapping, "ManagedObject"]) -> str:  # noqa: F821
    """Build the reconciliation key for an object: "namespace/name" for
    namespaced objects and "name" for cluster-scoped ones

    Args:
        obj:  Union[Mapping, ManagedObject]
            Anything with a metadata.name (and optionally metadata.namespace)

    Returns:
        key:  str
            The reconciliation key
    """
    metadata = obj.get("metadata") or {}
    name = metadata.get("name")
    if not name:
        raise MalformedItemError(f"Object has no metadata.name: {obj}")
    namespace = metadata.get("namespace")
    if namespace:
        return f"{namespace}{constants.KEY_DELIM}{name}"
    return name


def make_key(name: str, namespace: Optional[str] = None) -> str:
    """Build a key from its parts"""
    if namespace:
        return f"{namespace}{constants.KEY_DELIM}{name}"
    return name


def split_meta_namespace_key(key: str) -> Tuple[Optional[str], str]:
    """Split a reconciliation key into its (namespace, name) parts

    Args:
        key:  str
            A key built by meta_namespace_key

    Returns:
        namespace:  Optional[str]
            The namespace, or None for cluster-scoped keys
        name:  str
            The name
    """
    if not isinstance(key, str):
        raise MalformedItemError(f"Expected str key but got {key!r}")
    parts = key.split(constants.KEY_DELIM)
    if len(parts) == 1 and parts[0]:
        return None, parts[0]
    if len(parts) == 2 and parts[1]:
        return parts[0] or None, parts[1]
    raise MalformedItemError(f"Unexpected key format: {key!r}")
