class ChatError(Exception):
    """Base class for errors raised by the messaging core.

    `code` is the machine-readable value sent to clients in error payloads.
    """
    code = 'CHAT_ERROR'
    status = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'code': self.code, 'message': self.message}
