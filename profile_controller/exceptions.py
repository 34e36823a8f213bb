"""
This module implements custom exceptions
"""

## Base Error ##################################################################


class ControllerError(Exception):
    """Base class for all profile_controller exceptions"""

    def __init__(self, message: str, is_retryable: bool):
        """Construct with a flag indicating whether this error should cause the
        work item to be retried. This will be a static property of all children.
        """
        super().__init__(message)
        self._is_retryable = is_retryable

    @property
    def is_retryable(self):
        """Property indicating whether or not the work item that raised this
        error should be requeued with backoff
        """
        return self._is_retryable


## Terminal Errors #############################################################


class MalformedItemError(ControllerError):
    """A work item of unexpected shape was found on the queue. These are
    dropped permanently since retrying them would loop forever.
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_retryable=False)


class ConfigError(ControllerError):
    """Exception caused during usage of user-provided configuration"""

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_retryable=False)


## Retryable Errors ############################################################


class NotFoundError(ControllerError):
    """The requested parent or child is absent. Steps that expect absence, like
    looking up a parent that was deleted, handle this themselves. One that
    reaches the worker loop means a cache was behind the store, so the item is
    retried against fresher state.
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_retryable=True)


class ConflictError(ControllerError):
    """A write could not be applied because of the state of the object in the
    store. The condition is expected to resolve in a subsequent reconciliation.
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_retryable=True)


class OwnershipConflictError(ConflictError):
    """A child with the desired name exists but is not controlled by the parent
    being reconciled
    """

    def __init__(self, message: str = "", name: str = None):
        self.name = name
        super().__init__(message)


class StaleResourceVersionError(ConflictError):
    """An optimistic-concurrency write was rejected because the resourceVersion
    it carried is no longer current
    """


class TransientError(ControllerError):
    """A network or API failure that is expected to resolve on retry"""

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_retryable=True)


class ExpiredResourceVersionError(TransientError):
    """A watch was started from a resourceVersion that the store no longer
    remembers. Watchers must re-list.
    """


## Assertions ##################################################################


def assert_config(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a ConfigError. This should be
    used when validating library or user configuration.
    """
    if not condition:
        raise ConfigError(message)


def assert_cluster(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a TransientError. This should
    be used when an operation against the store fails in an unexpected way.
    """
    if not condition:
        raise TransientError(message)
