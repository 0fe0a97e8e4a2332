"""Infrastructure layer."""

from famchat.infrastructure.event_queue import EventQueue
from famchat.infrastructure.persistence import Database
from famchat.infrastructure.query_cache import QueryCache
from famchat.infrastructure.realtime import RealtimeHub
from famchat.infrastructure.scheduling import PeriodicTask

__all__ = ["Database", "EventQueue", "PeriodicTask", "QueryCache", "RealtimeHub"]
