"""Sync MCP tools: preview, confirm, one-shot sync."""

from provisioning.models import SessionNotFoundError
from skills_mcp.bootstrap import get_service


async def _preview_sync(args: dict) -> dict:
    """Compute pending changes and hold them under a session id for confirm_sync."""
    preview = await get_service().preview(force_refresh=args.get("force_refresh", False))
    return preview.to_dict()


async def _confirm_sync(args: dict) -> dict:
    try:
        result = await get_service().confirm(
            args["session_id"],
            approved=args.get("approved_skills"),
            rejected=args.get("rejected_skills"),
        )
    except SessionNotFoundError as e:
        return {
            "error": str(e),
            "code": "session_not_found",
            "message": "Run preview_sync again to get a new session id.",
        }
    return result.to_dict()


async def _sync_skills(args: dict) -> dict:
    outcome = await get_service().sync(
        dry_run=args.get("dry_run", False),
        force=args.get("force", False),
        force_refresh=args.get("force_refresh", False),
    )
    response = {"requires_confirmation": outcome["requires_confirmation"]}
    if "preview" in outcome:
        response["preview"] = outcome["preview"].to_dict()
        if outcome["requires_confirmation"]:
            response["message"] = "Review the pending changes and call confirm_sync with the session id."
    else:
        response["result"] = outcome["result"].to_dict()
    return response


TOOLS = [
    (
        "preview_sync",
        {
            "description": "Preview skill changes (add/update/remove) for the detected stack. Returns a session_id valid for 5 minutes.",
            "type": "object",
            "properties": {
                "force_refresh": {"type": "boolean", "default": False},
            },
        },
        _preview_sync,
    ),
    (
        "confirm_sync",
        {
            "description": "Apply a previewed change set. Without lists every change is applied; rejected names win over approved ones.",
            "type": "object",
            "properties": {
                "session_id": {"type": "string", "description": "session_id returned by preview_sync"},
                "approved_skills": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Only apply changes for these skills",
                },
                "rejected_skills": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Skip changes for these skills",
                },
            },
            "required": ["session_id"],
        },
        _confirm_sync,
    ),
    (
        "sync_skills",
        {
            "description": "Sync skills with the detected stack. Previews and asks for confirmation unless force=true; dry_run=true only reports.",
            "type": "object",
            "properties": {
                "dry_run": {"type": "boolean", "default": False},
                "force": {
                    "type": "boolean",
                    "default": False,
                    "description": "Apply all changes immediately without confirmation",
                },
                "force_refresh": {"type": "boolean", "default": False},
            },
        },
        _sync_skills,
    ),
]
