"""Infrastructure layer - Configuration, identity and persistence"""

from .db import DatabaseEngine
from .backend import Backend, ConfiguredBackend, UnconfiguredBackend, create_backend
from .identity import Identity, IdentityProvider, LocalIdentityProvider, SessionEvent

__all__ = [
    "DatabaseEngine", "Backend", "ConfiguredBackend", "UnconfiguredBackend", "create_backend",
    "Identity", "IdentityProvider", "LocalIdentityProvider", "SessionEvent",
]
