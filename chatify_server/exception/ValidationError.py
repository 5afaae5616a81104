from chatify_server.exception.ChatError import ChatError


class ValidationError(ChatError):
    """Raised when addressing or content of a request is malformed."""
    code = 'VALIDATION_ERROR'
    status = 400
