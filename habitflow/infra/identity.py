"""
Identity (session) provider interface.

Architecture Decision: Observer Pattern (Qt Signals)
Providers announce session transitions through the session_changed signal;
subscribers connect to it and disconnect when done. The sync layer reacts to
those transitions and knows nothing about how sessions are obtained.
"""

import logging
from abc import ABCMeta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field
from PySide6.QtCore import QObject, Signal

logger = logging.getLogger(__name__)


class SessionEvent(str, Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


class Identity(BaseModel):
    """Opaque signed-in identity; user_id is the stable part"""
    user_id: str = Field(..., min_length=1)
    email: Optional[str] = None
    access_token: Optional[str] = None


class QABCMeta(type(QObject), ABCMeta):
    """Combined metaclass for QObject and ABC"""
    pass


class IdentityProvider(QObject, metaclass=QABCMeta):
    """
    Abstract base class for session providers.

    Signal arguments: (SessionEvent, Identity or None)
    """

    session_changed = Signal(object, object)

    def __init__(self):
        super().__init__()

    async def get_session(self) -> Optional[Identity]:
        """Return the current identity, or None when signed out"""
        raise NotImplementedError("Subclasses must implement get_session")

    async def sign_out(self):
        """End the session; emits SIGNED_OUT"""
        raise NotImplementedError("Subclasses must implement sign_out")


class LocalIdentityProvider(IdentityProvider):
    """
    In-process provider holding a single identity.

    Used by the command-line client (identity from settings) and in tests.
    """

    def __init__(self, identity: Optional[Identity] = None):
        super().__init__()
        self._identity = identity

    async def get_session(self) -> Optional[Identity]:
        return self._identity

    async def sign_in(self, identity: Identity):
        self._identity = identity
        logger.info(f"User signed in: {identity.email or identity.user_id}")
        self.session_changed.emit(SessionEvent.SIGNED_IN, identity)

    async def refresh_token(self, access_token: str):
        if self._identity is None:
            return
        self._identity = self._identity.model_copy(update={"access_token": access_token})
        self.session_changed.emit(SessionEvent.TOKEN_REFRESHED, self._identity)

    async def sign_out(self):
        self._identity = None
        logger.info("User signed out")
        self.session_changed.emit(SessionEvent.SIGNED_OUT, None)
