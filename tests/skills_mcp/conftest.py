"""Shared fixtures for MCP tests."""

import pytest

import skills_mcp.bootstrap
import skills_mcp.server


@pytest.fixture(autouse=True)
def reset_bootstrap():
    """Reset the bootstrap singleton and tool cache between tests."""
    skills_mcp.bootstrap._components = None
    skills_mcp.server._tool_defs = None
    skills_mcp.server._handlers = None
    yield
    skills_mcp.bootstrap._components = None


@pytest.fixture
def mock_components(components):
    """Set bootstrap components directly to avoid real config/network init."""
    skills_mcp.bootstrap._components = components
    return components
