"""
Ingest module.
Contains the change feed interface and the change ingester.
"""

from buildqueue.ingest.feed import ChangeFeed, HttpChangeFeed
from buildqueue.ingest.ingester import ChangeIngester

__all__ = ["ChangeFeed", "HttpChangeFeed", "ChangeIngester"]
