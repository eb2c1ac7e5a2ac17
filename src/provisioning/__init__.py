from .context import ProjectContextStore
from .manager import SyncManager
from .materializer import Materializer
from .models import ProvisioningError, SessionNotFoundError
from .sessions import SessionStore

__all__ = [
    "ProjectContextStore",
    "SyncManager",
    "Materializer",
    "ProvisioningError",
    "SessionNotFoundError",
    "SessionStore",
]
