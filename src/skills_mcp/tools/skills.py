"""Installed-skill MCP tools: install, uninstall, list, updates, reset."""

from shared_types import InstallStatus
from skills_mcp.bootstrap import get_components, get_service


async def _install_skill(args: dict) -> dict:
    outcome = await get_service().install(args["skill_name"])
    return {"success": outcome.status == InstallStatus.INSTALLED, **outcome.to_dict()}


def _uninstall_skill(args: dict) -> dict:
    outcome = get_service().uninstall(args["skill_name"])
    return {"success": outcome.status != InstallStatus.FAILED, **outcome.to_dict()}


def _list_installed(args: dict) -> dict:
    skills = get_components()["materializer"].list_installed()
    return {"skills": [s.to_dict() for s in skills], "count": len(skills)}


async def _check_updates(args: dict) -> dict:
    updates = await get_service().check_updates()
    return {"updates": updates, "count": len(updates)}


def _reset_skills(args: dict) -> dict:
    if not args.get("confirm"):
        return {
            "error": "Reset cancelled",
            "message": "Set confirm=true to remove every installed skill. This cannot be undone.",
        }
    return get_service().reset(clear_cache=args.get("clear_cache", False))


TOOLS = [
    (
        "install_skill",
        {
            "description": "Install one catalog skill by name and record it as manually included.",
            "type": "object",
            "properties": {
                "skill_name": {"type": "string", "description": "Catalog skill name"},
            },
            "required": ["skill_name"],
        },
        _install_skill,
    ),
    (
        "uninstall_skill",
        {
            "description": "Remove an installed skill and record it as excluded from future syncs.",
            "type": "object",
            "properties": {
                "skill_name": {"type": "string", "description": "Installed skill name"},
            },
            "required": ["skill_name"],
        },
        _uninstall_skill,
    ),
    (
        "list_installed",
        {
            "description": "List skills present in the installation directory.",
            "type": "object",
            "properties": {},
        },
        _list_installed,
    ),
    (
        "check_updates",
        {
            "description": "Installed skills whose catalog version differs from the installed one.",
            "type": "object",
            "properties": {},
        },
        _check_updates,
    ),
    (
        "reset_skills",
        {
            "description": "Uninstall every installed skill, optionally clearing the catalog cache.",
            "type": "object",
            "properties": {
                "confirm": {"type": "boolean", "description": "Must be true to proceed"},
                "clear_cache": {"type": "boolean", "default": False},
            },
            "required": ["confirm"],
        },
        _reset_skills,
    ),
]
