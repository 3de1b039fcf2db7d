# Overview: Realtime layer: room topology, typed events, fan-out router, publishers, dispatcher.

from .dispatcher import NotificationDispatcher, get_dispatcher, init_dispatcher
from .publisher import InMemoryPublisher, Publisher, SocketIOPublisher
from .rooms import ADMIN_ROOM, employee_room, user_room

__all__ = [
    "ADMIN_ROOM",
    "InMemoryPublisher",
    "NotificationDispatcher",
    "Publisher",
    "SocketIOPublisher",
    "employee_room",
    "get_dispatcher",
    "init_dispatcher",
    "user_room",
]
