"""
Builder registry and implementations.

A builder takes one queue entry's package version and reports success or
failure. Builders may be slow and have no timeout; a hanging build blocks the
drain pass that invoked it.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable

from buildqueue.config import get_settings
from buildqueue.errors import BuildError
from buildqueue.types.build import BuildContext, BuildResult

logger = logging.getLogger(__name__)

# Type alias for builder functions
Builder = Callable[[BuildContext], Awaitable[BuildResult]]

# Builder registry
_builders: dict[str, Builder] = {}

# Keep at most this much of a failing build's output in the failure reason
_OUTPUT_TAIL_CHARS = 2000


def register_builder(name: str) -> Callable[[Builder], Builder]:
    """
    Decorator to register a builder.

    Args:
        name: The name the builder is selected by (settings.builder).

    Returns:
        Decorator function.

    Example:
        @register_builder("docker")
        async def build_in_docker(context: BuildContext) -> BuildResult:
            ...
    """
    def decorator(builder: Builder) -> Builder:
        _builders[name] = builder
        logger.debug(f"Registered builder: {name}")
        return builder
    return decorator


def get_builder(name: str) -> Builder | None:
    """
    Get a builder by name.

    Args:
        name: The builder name.

    Returns:
        The builder function or None if not found.
    """
    return _builders.get(name)


def list_builders() -> list[str]:
    """List all registered builder names."""
    return list(_builders.keys())


# ============================================================================
# Built-in builders
# ============================================================================


@register_builder("command")
async def build_with_command(context: BuildContext) -> BuildResult:
    """
    Run the configured build command for the package version.

    `{name}` and `{version}` in settings.build_command are substituted; any
    non-zero exit status is a build failure.
    """
    argv = [
        arg.format(name=context.name, version=context.version)
        for arg in get_settings().build_command
    ]

    logger.info(
        "Running build command",
        extra={"package": f"{context.name}-{context.version}", "argv": argv}
    )

    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as e:
        raise BuildError(context.name, context.version, f"cannot start {argv[0]}: {e}") from e

    stdout, _ = await process.communicate()
    output = stdout.decode(errors="replace")

    if process.returncode != 0:
        return BuildResult(
            success=False,
            output=output[-_OUTPUT_TAIL_CHARS:],
            error=f"Build command exited with status {process.returncode}",
        )

    return BuildResult(success=True, output=output[-_OUTPUT_TAIL_CHARS:])


@register_builder("noop")
async def build_noop(context: BuildContext) -> BuildResult:
    """Succeed without building anything (dry runs)."""
    return BuildResult(success=True)


@register_builder("failing")
async def build_failing(context: BuildContext) -> BuildResult:
    """
    Builder that always fails - for exercising retry accounting.
    """
    return BuildResult(
        success=False,
        error=f"Intentional failure on attempt {context.attempt + 1}",
    )


async def execute_build(context: BuildContext, builder: str | Builder) -> BuildResult:
    """
    Build one package version and time it.

    Never raises for a build problem: an unknown builder or an exception from
    the builder becomes a failed BuildResult.

    Args:
        context: The build context.
        builder: A registered builder name or a builder callable.

    Returns:
        BuildResult with duration_ms filled in.
    """
    package = f"{context.name}-{context.version}"

    if isinstance(builder, str):
        handler = get_builder(builder)
        if handler is None:
            logger.error(
                f"No builder registered: {builder}",
                extra={"entry_id": context.entry_id}
            )
            return BuildResult(
                success=False,
                error=f"No builder registered: {builder}",
            )
    else:
        handler = builder

    start_time = time.monotonic()
    try:
        result = await handler(context)
    except BuildError as e:
        result = BuildResult(success=False, error=e.reason)
    except Exception as e:
        logger.exception(
            "Builder raised exception",
            extra={"entry_id": context.entry_id, "package": package}
        )
        result = BuildResult(success=False, error=f"Builder exception: {e}")

    result.duration_ms = (time.monotonic() - start_time) * 1000
    return result
