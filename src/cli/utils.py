"""Shared CLI utilities."""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import structlog
from rich.console import Console

console = Console()
logger = structlog.get_logger()


def get_components(project_path: Optional[Path] = None) -> dict:
    """Initialize all components from the project config."""
    from catalog.cache import CatalogCache
    from catalog.client import CatalogClient
    from catalog.models import RegistrySource
    from detection.detector import StackDetector
    from cli.config import config_path_for, get_paths, get_project_path, load_config_model
    from cli.retry import retry_settings
    from provisioning.context import ProjectContextStore
    from provisioning.manager import SyncManager
    from provisioning.materializer import Materializer
    from provisioning.service import SkillsService
    from provisioning.sessions import SessionStore

    project = project_path or get_project_path()
    config_model = load_config_model(config_path_for(project))
    config = config_model.to_dict()
    paths = get_paths(config, project)

    cache = CatalogCache(paths["cache_dir"], ttl_days=config_model.cache.refresh_interval_days)
    catalog = CatalogClient(
        [RegistrySource(url=s.url, priority=s.priority, auth=s.auth) for s in config_model.registry],
        cache,
        bundles_url=config_model.bundles_url,
        github_token=config_model.github.token,
        **retry_settings(config),
    )
    materializer = Materializer(paths["install_path"])
    context_store = ProjectContextStore(paths["context"])
    manager = SyncManager(
        catalog,
        materializer,
        sessions=SessionStore(),
        always_include=config_model.skills.always_include,
        always_exclude=config_model.skills.always_exclude,
        auto_remove=config_model.sync.auto_remove,
        prompt_on_changes=config_model.sync.prompt_on_changes,
    )

    service = SkillsService(
        project,
        catalog,
        manager,
        context_store,
        detector_factory=lambda: StackDetector.from_config(project, config),
        detection_enabled=config_model.detection.enabled,
    )

    return {
        "config": config,
        "config_model": config_model,
        "paths": paths,
        "cache": cache,
        "catalog": catalog,
        "materializer": materializer,
        "context": context_store,
        "manager": manager,
        "service": service,
    }


def run_async(components: dict, coro):
    """Run ``coro`` to completion, closing the catalog HTTP client afterwards."""

    async def _main():
        try:
            return await coro
        finally:
            await components["service"].close()

    return asyncio.run(_main())


def load_components() -> dict:
    """get_components() for CLI commands: config errors exit with a message."""
    try:
        return get_components()
    except ValueError as e:
        console.print(f"[red]Config error:[/] {e}")
        sys.exit(1)
