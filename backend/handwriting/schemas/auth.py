# handwriting/schemas/auth.py
"""
Schemas for the credential service actions (register / login).
"""
from typing import Literal

from pydantic import BaseModel

from handwriting.models import User


class AuthRequest(BaseModel):
    """Body of an auth action; the password is hashed by the service."""
    action: Literal["register", "login"]
    username: str
    password: str


class AuthResult(BaseModel):
    """Successful auth reply: a sanitized user, no secret fields."""
    user: User
