"""Stack detection MCP tools: detect, redetect, project context."""

from skills_mcp.bootstrap import get_service


async def _detect_stack(args: dict) -> dict:
    """Run every detector tier and return the merged stack with per-tier outcomes."""
    report = await get_service().detect()
    return report.to_dict()


async def _redetect(args: dict) -> dict:
    """Re-run detection and rewrite the project context file."""
    context = await get_service().redetect()
    return {
        "project": context.project,
        "detected": context.detected,
        "sources": context.detection_sources,
    }


async def _get_project_context(args: dict) -> dict:
    context = await get_service().project_context()
    return context.to_dict()


TOOLS = [
    (
        "detect_stack",
        {
            "description": "Detect the project's technology stack from manifests, a static analyzer and the GitHub dependency graph.",
            "type": "object",
            "properties": {},
        },
        _detect_stack,
    ),
    (
        "redetect",
        {
            "description": "Re-scan the project and refresh the stored project context.",
            "type": "object",
            "properties": {},
        },
        _redetect,
    ),
    (
        "get_project_context",
        {
            "description": "Stored project context: detected stack, installed skills, manual include/exclude lists. Generated on first use.",
            "type": "object",
            "properties": {},
        },
        _get_project_context,
    ),
]
