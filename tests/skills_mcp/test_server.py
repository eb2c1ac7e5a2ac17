"""Tests for MCP server init, tool listing and dispatch."""

import json

import pytest

import skills_mcp.bootstrap
import skills_mcp.server
from skills_mcp.server import _load_tools, call_tool, dispatch, list_tools

EXPECTED_TOOLS = {
    "detect_stack",
    "redetect",
    "get_project_context",
    "get_catalog",
    "search_skills",
    "search_bundles",
    "preview_sync",
    "confirm_sync",
    "sync_skills",
    "install_skill",
    "uninstall_skill",
    "list_installed",
    "check_updates",
    "reset_skills",
}


def test_load_tools_names():
    tools, handlers = _load_tools()
    assert {t.name for t in tools} == EXPECTED_TOOLS
    assert set(handlers) == EXPECTED_TOOLS


def test_schemas_are_objects():
    tools, _ = _load_tools()
    for tool in tools:
        assert tool.inputSchema["type"] == "object"
        assert tool.description


@pytest.mark.asyncio
async def test_list_tools_caches():
    first = await list_tools()
    second = await list_tools()
    assert first is second
    assert len(first) == 14


@pytest.mark.asyncio
async def test_unknown_tool():
    result = await dispatch("nope", {})
    assert result == {"error": "Unknown tool: nope"}


@pytest.mark.asyncio
async def test_handler_exception_becomes_payload(monkeypatch):
    def boom(args):
        raise RuntimeError("kaput")

    monkeypatch.setattr(skills_mcp.server, "_handlers", {"boom": boom})
    result = await dispatch("boom", None)
    assert result["error"] == "kaput"
    assert "RuntimeError" in result["traceback"]


@pytest.mark.asyncio
async def test_call_tool_returns_json_text(mock_components, installed_skill):
    installed_skill("react")
    [content] = await call_tool("list_installed", {})
    payload = json.loads(content.text)
    assert payload["count"] == 1
    assert payload["skills"][0]["name"] == "react"


@pytest.mark.asyncio
async def test_shutdown_closes_catalog(mock_components):
    await skills_mcp.bootstrap.shutdown()
    assert mock_components["catalog"].closed is True
    assert skills_mcp.bootstrap._components is None
    await skills_mcp.bootstrap.shutdown()
