"""
Chat room server entry point.
Wires configuration, database, upload routes and Socket.IO handlers into one Flask app.
"""

import logging
from flask import Flask

from chatroom.utils import config
from chatroom.models import init_db
from chatroom.routes.uploads import uploads_bp
from chatroom.websockets.handlers import init_socketio


app = Flask(__name__)
config.init_app(app)

# Create tables if they don't exist
init_db()

app.register_blueprint(uploads_bp)

# Socket.IO setup
socketio = init_socketio(app)

logger = logging.getLogger(__name__)


if __name__ == "__main__":
    port = app.config["PORT"]
    logger.info(f"Chat room server running on port {port}")
    options = {}
    if socketio.async_mode == "threading":
        # Werkzeug is the only server available in threading mode
        options["allow_unsafe_werkzeug"] = True
    socketio.run(app, host="0.0.0.0", port=port, debug=False, **options)
