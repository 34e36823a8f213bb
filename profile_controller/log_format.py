"""
Custom logging format that carries the identity of the object or key a log
line is about
"""

# First Party
from alog import AlogJsonFormatter
import alog

log = alog.use_channel("CTRLR")


class ControllerJsonFormatter(AlogJsonFormatter):
    """Custom Log Format that extends AlogJsonFormatter to add the identifiers
    of the resource being reconciled, the reconciliation key and thread
    information to the json
    """

    _FIELDS_TO_PRINT = AlogJsonFormatter._FIELDS_TO_PRINT + [
        "process",
        "thread",
        "threadName",
        "kind",
        "apiVersion",
        "resourceVersion",
        "resourceName",
        "reconcileKey",
    ]

    def format(self, record):
        if key := getattr(record, "key", None):
            record.reconcileKey = key

        if resource := getattr(record, "resource", None):
            record.kind = resource.get("kind")
            record.apiVersion = resource.get("apiVersion")

            metadata = resource.get("metadata") or {}
            record.resourceVersion = metadata.get("resourceVersion")
            record.resourceName = metadata.get("name")
            if not getattr(record, "reconcileKey", None) and metadata.get("name"):
                namespace = metadata.get("namespace")
                record.reconcileKey = (
                    f"{namespace}/{metadata['name']}" if namespace else metadata["name"]
                )

        return super().format(record)
