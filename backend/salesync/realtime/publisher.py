# Overview: Transport seam for realtime fan-out; Socket.IO in production, in-memory in tests.

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class Publisher(Protocol):
    def publish(self, room: str, event: str, payload: dict) -> None:
        ...


class SocketIOPublisher:
    """
    Emits to a Socket.IO room through the app's SocketIO instance.

    Fire-and-forget: emit() returns as soon as the message is queued, there
    is no delivery acknowledgment and no replay for clients that were
    offline.
    """

    def __init__(self, socketio):
        self.socketio = socketio

    def publish(self, room: str, event: str, payload: dict) -> None:
        self.socketio.emit(event, payload, to=room)


@dataclass(frozen=True)
class Delivery:
    room: str
    event: str
    payload: dict


class InMemoryPublisher:
    """Records deliveries instead of sending them (realtime disabled, tests)."""

    def __init__(self):
        self.deliveries: list[Delivery] = []

    def publish(self, room: str, event: str, payload: dict) -> None:
        self.deliveries.append(Delivery(room=room, event=event, payload=payload))

    def to_room(self, room: str) -> list[Delivery]:
        return [d for d in self.deliveries if d.room == room]

    def named(self, event: str) -> list[Delivery]:
        return [d for d in self.deliveries if d.event == event]

    def clear(self) -> None:
        self.deliveries.clear()
