import logging

from flask import Blueprint
from pymongo.errors import PyMongoError

from chatify_server.core import get_core
from chatify_server.utils.helpers import respond_error, respond_success

logger = logging.getLogger(__name__)

public_bp = Blueprint('public', __name__)


# =============================================================================
# Health Check Endpoints
# =============================================================================

@public_bp.route('/health', methods=['GET'])
def health_check():
    """Simple health endpoint for load balancers and uptime checks.

    Pings the database; returns 503 without internal details when it is
    unreachable.
    """
    core = get_core()
    try:
        core.db.command('ping')
    except PyMongoError as e:
        logger.exception("Health check DB error: %s", e)
        return respond_error({'status': 'degraded'}, status=503)
    return respond_success({'status': 'ok', 'db': 'reachable', **core.gateway.connection_summary()})
