from .cache import CatalogCache
from .client import CatalogClient, CatalogError, CatalogFetchError
from .models import Bundle, CatalogEntry, RegistrySource, SkillTrigger

__all__ = [
    "CatalogCache",
    "CatalogClient",
    "CatalogError",
    "CatalogFetchError",
    "Bundle",
    "CatalogEntry",
    "RegistrySource",
    "SkillTrigger",
]
