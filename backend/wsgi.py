# backend/wsgi.py
# Entry point for `flask --app wsgi ...` and `python wsgi.py` (Socket.IO dev server).
import os

from salesync import create_app
from salesync.extensions import socketio

app = create_app()


if __name__ == "__main__":
    socketio.run(
        app,
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "5000")),
        debug=os.environ.get("FLASK_DEBUG", "0") == "1",
    )
