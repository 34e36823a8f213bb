"""
Import the thread classes used by the controller
"""
# Local
from .base import ThreadBase
from .timer import TimerEvent, TimerThread
from .worker import WorkerThread
