"""
Worker module.
Contains the periodic ingest-and-drain build worker.
"""

from buildqueue.worker.main import BuildWorker, run

__all__ = ["BuildWorker", "run"]
