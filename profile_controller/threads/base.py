"""
Module for the ThreadBase Class
"""

# Standard
from typing import Optional
import threading

# First Party
import alog

log = alog.use_channel("TRDUTLS")


class ThreadBase(threading.Thread):
    """Base class for all other thread classes. This class handles generic
    starting and stopping"""

    def __init__(self, name: Optional[str] = None, daemon: Optional[bool] = None):
        """Initialize class and store required instance variables. This function
        is normally overriden by subclasses that pass in static name/daemon
        variables

        Args:
            name:  Optional[str]
                The name of the thread
            daemon:  Optional[bool]
                Whether python should skip waiting for this thread on exit
        """
        self.shutdown = threading.Event()
        super().__init__(name=name, daemon=daemon)

    ## Abstract Interface ######################################################

    def run(self):
        """Control loop for the thread. Once this function exits the thread stops"""
        raise NotImplementedError()

    ## Base Class Interface ####################################################

    def start_thread(self):
        """If the thread is not already alive start it"""
        if not self.is_alive():
            log.info("Starting %s: %s", self.__class__.__name__, self.name)
            self.start()

    def stop_thread(self):
        """Set the shutdown event"""
        log.info("Stopping %s: %s", self.__class__.__name__, self.name)
        self.shutdown.set()

    def should_stop(self) -> bool:
        """Helper to determine if a thread should shutdown"""
        return self.shutdown.is_set()

    def wait_on_shutdown(self, timeout: float) -> bool:
        """Sleep for up to timeout seconds, waking early on shutdown

        Returns:
            keep_running:  bool
                False if the thread was asked to stop while waiting
        """
        self.shutdown.wait(timeout)
        return not self.should_stop()
