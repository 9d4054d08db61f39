"""Caller identity and the verifier interface."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class InvalidToken(Exception):
    pass


class Identity(BaseModel):
    id: str
    email: Optional[str] = None
    claims: Dict[str, Any] = Field(default_factory=dict)


class IdentityVerifier(ABC):

    @abstractmethod
    def verify(self, token: str) -> Identity:
        """Resolve a bearer token to an identity, or raise InvalidToken."""
        ...
