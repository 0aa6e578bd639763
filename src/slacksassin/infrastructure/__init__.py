"""Infrastructure layer."""

from slacksassin.infrastructure.event_queue import EventQueue
from slacksassin.infrastructure.persistence import Database, SqliteMessageRepository

__all__ = ["Database", "EventQueue", "SqliteMessageRepository"]
