"""
Queue module.
Contains the retry queue that drains build requests.
"""

from buildqueue.queue.retry_queue import RetryQueue

__all__ = ["RetryQueue"]
