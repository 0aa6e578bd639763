"""Persistence infrastructure."""

from slacksassin.infrastructure.persistence.database import Database
from slacksassin.infrastructure.persistence.message_repository import (
    SqliteMessageRepository,
)

__all__ = ["Database", "SqliteMessageRepository"]
