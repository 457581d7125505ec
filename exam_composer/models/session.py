"""Caller identity passed into a form instance."""

from typing import Optional

from pydantic import BaseModel, Field


class SessionContext(BaseModel):
    """Authentication context injected by whoever opens the form.

    The form never reads tokens from ambient state; the router (or CLI)
    builds this from the incoming request and hands it over.
    """
    access_token: Optional[str] = Field(default=None, description="Bearer token forwarded to the exam service")
    user_id: Optional[str] = Field(default=None, description="Opaque caller id, for logging only")

    @property
    def authorization_header(self) -> Optional[str]:
        if not self.access_token:
            return None
        return f"Bearer {self.access_token}"
