from chatify_server.exception.ChatError import ChatError


class InvalidTransitionError(ChatError):
    """Raised when a message status change would move backwards or is not tracked."""
    code = 'INVALID_TRANSITION'
    status = 409

    def __init__(self, message, current=None, requested=None):
        super().__init__(message)
        self.current = current
        self.requested = requested
