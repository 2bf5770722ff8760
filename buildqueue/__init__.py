"""
Registry Build Queue

Feeds a durable build queue from an upstream package-registry change feed and
drains it through a build step with bounded per-entry retry accounting.
"""

__version__ = "1.0.0"
