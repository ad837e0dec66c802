from fastapi import status


class MessagelyError(Exception):
    """Base for every error the core surfaces to the HTTP boundary."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = 'Internal error'

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {'error': {'message': self.message, 'status': self.status_code}}


class BadRequestError(MessagelyError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Bad Request'


class AuthenticationFailed(MessagelyError):
    # one message for unknown user and wrong password alike
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = 'Invalid username or password'


class UnauthorizedError(MessagelyError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = 'Unauthorized'


class NotFoundError(MessagelyError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Not Found'


class ConflictError(MessagelyError):
    status_code = status.HTTP_409_CONFLICT
    default_message = 'Conflict'
