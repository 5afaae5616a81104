import argparse
import logging

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO

# Register canonical blueprints from route modules
from chatify_server import auth_bp, user_bp, group_bp, chat_bp, public_bp
from chatify_server.core import ChatCore
from chatify_server.repository.mongo_helper import MongoClientFactory
from config import config

logger = logging.getLogger(__name__)


def configure_logging():
    """Configure the root logger from the logging section of the config."""
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format=config.LOG_FORMAT,
        datefmt=config.LOG_DATE_FORMAT
    )


def create_app(db=None, socketio: SocketIO = None, now_func=None) -> Flask:
    """Application factory used by server.py and tests.

    Builds the Flask app, CORS, the Socket.IO server and the messaging core.
    `db` defaults to the configured MongoDB database; tests pass a mongomock
    one instead.
    """
    app = Flask(__name__)
    CORS(app, origins=config.CORS_ORIGINS_LIST)

    if db is None:
        db = MongoClientFactory.get_db(config.MONGO_URI, config.CHAT_DB_NAME)
    if socketio is None:
        socketio = SocketIO(cors_allowed_origins=config.CORS_ORIGINS_LIST, async_mode=config.SOCKETIO_ASYNC_MODE)
    socketio.init_app(app)

    core_options = {
        'page_size': config.MESSAGE_PAGE_SIZE,
        'search_limit': config.SEARCH_RESULT_LIMIT,
        'max_attachment_mb': config.MAX_ATTACHMENT_SIZE_MB,
    }
    if now_func is not None:
        core_options['now_func'] = now_func
    core = ChatCore(db, socketio, **core_options)
    core.init_app(app)
    core.start()

    # Register canonical blueprints (keep resource endpoints grouped)
    app.register_blueprint(auth_bp)
    app.register_blueprint(user_bp)
    app.register_blueprint(group_bp)
    app.register_blueprint(chat_bp)
    app.register_blueprint(public_bp)

    return app


def parse_args():
    """Parse simple CLI arguments for running the server."""
    parser = argparse.ArgumentParser(description='Run the Chatify messaging server')
    parser.add_argument('--port', type=int, default=config.PORT, help='TCP port to bind (default: PORT env or config)')
    parser.add_argument('--host', default=config.HOST, help='Interface to bind (default: HOST env or config)')
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    configure_logging()
    config.validate_required()
    app = create_app()
    socketio = app.extensions['socketio']
    logger.info('Starting %s %s (%s) with Socket.IO on %s:%s',
                config.APP_NAME, config.APP_VERSION, config.CURRENT_ENV, args.host, args.port)
    socketio.run(app, host=args.host, port=args.port, debug=config.DEBUG, allow_unsafe_werkzeug=True)
