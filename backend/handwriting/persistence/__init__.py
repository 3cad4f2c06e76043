"""
Persistence Module

Adapters for the remote persistence service:
- HttpPersistenceService: serverless data API over httpx
- InMemoryPersistenceService: persisted layout kept in process memory
"""
from .base import PersistenceService
from .http_client import HttpPersistenceService
from .memory import InMemoryPersistenceService

__all__ = [
    "PersistenceService",
    "HttpPersistenceService",
    "InMemoryPersistenceService",
]
