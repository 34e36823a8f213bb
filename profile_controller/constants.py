"""
Shared module to hold constant values for the library
"""

# Delimiter used for nested dict keys in config lookups
NESTED_DICT_DELIM = "."

# Delimiter between namespace and name in a reconciliation key
KEY_DELIM = "/"

## Events ######################################################################

# Event types understood by the event sink
EVENT_TYPE_NORMAL = "Normal"
EVENT_TYPE_WARNING = "Warning"

# Reason used when a parent is synced successfully
SUCCESS_SYNCED = "Synced"

# Reason used when a parent fails to sync because a child with the same name
# already exists and is not controlled by it
ERR_RESOURCE_EXISTS = "ErrResourceExists"

# Message templates for the above reasons
MESSAGE_RESOURCE_EXISTS = 'Resource "{name}" already exists and is not managed by {kind}'
MESSAGE_RESOURCE_SYNCED = "{kind} synced successfully"

# Longest event message accepted before truncation
MAX_EVENT_MESSAGE_LENGTH = 1024
CUT_MESSAGE_INFIX = "..."

## Status ######################################################################

# The "type" value of the condition published on every parent
SYNCED_CONDITION = "Synced"

# The key in the condition used for the timestamp
TIMESTAMP_KEY = "lastTransitionTime"

## Vault #######################################################################

# Engine type mounted for every profile's key/value storage
KV_MOUNT_TYPE = "kv"
KV_MOUNT_OPTIONS = {"version": "2"}
