# storefront/domain/session.py
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SessionContext:
    """Who is calling: a browser session, optionally signed in."""

    session_id: str
    user_id: Optional[str] = None
    email: Optional[str] = None
    access_token: Optional[str] = None

    @property
    def authenticated(self) -> bool:
        return self.user_id is not None
