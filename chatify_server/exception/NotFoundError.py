from chatify_server.exception.ChatError import ChatError


class NotFoundError(ChatError):
    """Raised when a referenced identity, group or message does not exist."""
    code = 'NOT_FOUND'
    status = 404
