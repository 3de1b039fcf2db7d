# Overview: Room topology for the realtime layer.

ADMIN_ROOM = "admin_room"


def employee_room(user_id: int) -> str:
    """The single employee who owns a sale."""
    return f"employee_{user_id}_room"


def user_room(user_id: int) -> str:
    """Per-user channel for system messages that are not about a sale."""
    return f"user_{user_id}_room"


def rooms_for(user_id: int, role: str) -> list[str]:
    """Rooms a connection joins for the given identity."""
    if role == "admin":
        return [ADMIN_ROOM, user_room(user_id)]
    return [employee_room(user_id), user_room(user_id)]
