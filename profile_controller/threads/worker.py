"""
The WorkerThread drains a controller's work queue
"""

# Standard
from typing import Optional

# First Party
import alog

# Local
from .base import ThreadBase

log = alog.use_channel("WRKTHRD")

# Forward declaration of Controller
CONTROLLER_TYPE = "Controller"


class WorkerThread(ThreadBase):
    """A worker repeatedly hands the controller's next work item to its
    reconciler until the queue shuts down. Workers are not daemons so that
    in-flight reconciliations finish on shutdown.
    """

    def __init__(self, controller: CONTROLLER_TYPE, name: Optional[str] = None):
        super().__init__(name=name or "worker", daemon=False)
        self.controller = controller

    def run(self):
        log.debug("Worker %s started", self.name)
        while self.controller.process_next_work_item():
            pass
        log.debug("Worker %s exiting", self.name)
