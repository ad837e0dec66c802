"""
Per-resource authorization.

The predicates are pure; the ``ensure_*`` helpers turn a false answer into
an UnauthorizedError for the routes.
"""
from .errors import UnauthorizedError
from .schemas.messages import MessageOut


def can_view(acting_username: str, message: MessageOut) -> bool:
    return acting_username in (message.from_user.username, message.to_user.username)


def can_mark_read(acting_username: str, message: MessageOut) -> bool:
    return acting_username == message.to_user.username


def ensure_can_view(acting_username: str, message: MessageOut):
    if not can_view(acting_username, message):
        raise UnauthorizedError('Only the sender or recipient may view this message')


def ensure_can_mark_read(acting_username: str, message: MessageOut):
    if not can_mark_read(acting_username, message):
        raise UnauthorizedError('Only the recipient may mark this message as read')


def ensure_correct_user(acting_username: str, username: str):
    if acting_username != username:
        raise UnauthorizedError()
