from .routes.auth import auth_bp
from .routes.user import user_bp
from .routes.group import group_bp
from .routes.chat import chat_bp
from .routes.public import public_bp
