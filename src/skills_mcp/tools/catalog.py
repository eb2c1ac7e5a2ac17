"""Catalog MCP tools: list, search skills and bundles."""

from skills_mcp.bootstrap import get_components, get_service


async def _get_catalog(args: dict) -> dict:
    entries = await get_service().get_catalog(force_refresh=args.get("force_refresh", False))
    return {"skills": [e.summary() for e in entries], "count": len(entries)}


async def _search_skills(args: dict) -> dict:
    catalog = get_components()["catalog"]
    entries = await catalog.search(args.get("query"), args.get("tags"))
    skills = [
        {**e.summary(), "triggers": e.triggers.model_dump()}
        for e in entries
    ]
    return {"skills": skills, "count": len(skills)}


async def _search_bundles(args: dict) -> dict:
    catalog = get_components()["catalog"]
    bundles = await catalog.search_bundles(args.get("query"), args.get("tags"))
    return {"bundles": [b.model_dump() for b in bundles], "count": len(bundles)}


TOOLS = [
    (
        "get_catalog",
        {
            "description": "List every skill available across the configured catalog sources.",
            "type": "object",
            "properties": {
                "force_refresh": {
                    "type": "boolean",
                    "description": "Ignore the disk cache and refetch all sources",
                    "default": False,
                },
            },
        },
        _get_catalog,
    ),
    (
        "search_skills",
        {
            "description": "Search catalog skills by name/description substring and tags.",
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Case-insensitive text to look for"},
                "tags": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Match skills carrying any of these tags",
                },
            },
        },
        _search_skills,
    ),
    (
        "search_bundles",
        {
            "description": "Search curated skill bundles.",
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Text matched against id, name, description, use cases"},
                "tags": {"type": "array", "items": {"type": "string"}},
            },
        },
        _search_bundles,
    ),
]
