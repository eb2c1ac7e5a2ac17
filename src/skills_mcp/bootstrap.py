"""Lazy component initialization for the MCP server process."""

import structlog

logger = structlog.get_logger()

_components = None


def get_components() -> dict:
    """Process-wide components for the project in ``MOTHER_PROJECT_PATH`` (or cwd).

    Preview sessions live on the manager, so a session id stays valid for the
    lifetime of the server process (subject to its TTL).
    """
    global _components
    if _components is None:
        from cli.utils import get_components as _get

        _components = _get()
        logger.info("mcp_bootstrap_init", project=str(_components["paths"]["project"]))
    return _components


def get_service():
    return get_components()["service"]


async def shutdown():
    """Close the catalog HTTP client if components were ever built."""
    global _components
    if _components is None:
        return
    await _components["service"].close()
    _components = None
