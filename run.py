import os

from payaso import create_app
from payaso.extensions import socketio

app = create_app(os.getenv("FLASK_CONFIG", "default"))

if __name__ == '__main__':
    socketio.run(app, debug=app.config.get("DEBUG", False), port=int(os.getenv("PORT", 5000)),
                 allow_unsafe_werkzeug=True)
