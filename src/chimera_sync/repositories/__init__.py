"""Repositories package."""

from chimera_sync.repositories.notes import NoteRepository
from chimera_sync.repositories.users import UserRepository, user_repository

__all__ = [
    "NoteRepository",
    "UserRepository",
    "user_repository",
]
