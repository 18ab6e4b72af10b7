"""Persistence adapters for deployment sessions."""

from deployer.repository.json_store import JsonSessionRepository

__all__ = ["JsonSessionRepository"]
