"""
Builder module.
Contains the builder registry and the built-in builders.
"""

from buildqueue.builder.handlers import (
    Builder,
    execute_build,
    get_builder,
    list_builders,
    register_builder,
)

__all__ = [
    "Builder",
    "execute_build",
    "get_builder",
    "list_builders",
    "register_builder",
]
