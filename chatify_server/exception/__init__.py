from chatify_server.exception.ChatError import ChatError
from chatify_server.exception.ValidationError import ValidationError
from chatify_server.exception.NotFoundError import NotFoundError
from chatify_server.exception.InvalidTransitionError import InvalidTransitionError

__all__ = ['ChatError', 'ValidationError', 'NotFoundError', 'InvalidTransitionError']
