"""MCP server entry point: stdio transport, tool routing by name."""

import inspect
import json
import traceback

import structlog
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

logger = structlog.get_logger()

app = Server("mother-skills")

# Cache tool definitions at module level (populated on first list_tools call)
_tool_defs: list[Tool] | None = None
_handlers: dict | None = None


def _load_tools() -> tuple[list[Tool], dict]:
    """Load tool definitions and handlers from all tool modules."""
    from skills_mcp.tools import catalog, skills, stack, sync

    modules = [stack, catalog, sync, skills]
    tools = []
    handlers = {}
    for mod in modules:
        for name, schema, handler in mod.TOOLS:
            tools.append(Tool(name=name, description=schema["description"], inputSchema=schema))
            handlers[name] = handler
    return tools, handlers


@app.list_tools()
async def list_tools() -> list[Tool]:
    global _tool_defs, _handlers
    if _tool_defs is None:
        _tool_defs, _handlers = _load_tools()
    return _tool_defs


async def dispatch(name: str, arguments: dict | None) -> dict:
    """Run one tool. Unexpected errors become an error payload for this call only."""
    global _tool_defs, _handlers
    if _handlers is None:
        _tool_defs, _handlers = _load_tools()

    handler = _handlers.get(name)
    if not handler:
        return {"error": f"Unknown tool: {name}"}

    try:
        result = handler(arguments or {})
        if inspect.isawaitable(result):
            result = await result
        return result
    except Exception as e:
        logger.error("tool_error", tool=name, error=str(e))
        return {"error": str(e), "traceback": traceback.format_exc()}


@app.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    result = await dispatch(name, arguments)
    return [TextContent(type="text", text=json.dumps(result, default=str))]


async def run():
    from skills_mcp.bootstrap import shutdown

    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(read_stream, write_stream, app.create_initialization_options())
    finally:
        await shutdown()


def main():
    import asyncio

    from cli.config import load_config_model
    from cli.logging_config import setup_logging

    try:
        level = load_config_model().logging.level
    except ValueError:
        level = "INFO"
    setup_logging(json_mode=True, level=level)
    asyncio.run(run())


if __name__ == "__main__":
    main()
