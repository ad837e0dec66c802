import logging
from datetime import datetime, timezone
from fastapi.concurrency import run_in_threadpool
from passlib.context import CryptContext
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload
from .models.users import User
from .models.messages import Message
from .schemas.users import RegisterIn, UserOut, UserSummary
from .schemas.messages import MessageOut, SentMessageOut, ReceivedMessageOut, ReadReceiptOut
from .errors import AuthenticationFailed, ConflictError, NotFoundError
from . import metrics

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def _require_user(session, username: str) -> User:
    q = await session.execute(select(User).where(User.username == username))
    user = q.scalars().first()
    if not user:
        raise NotFoundError(f'No such user: {username}')
    return user


class CredentialStore:
    """Registration and password verification.

    Hashing is bcrypt at the configured work factor. It blocks the calling
    request for its whole duration and runs in the threadpool so other
    requests keep being served.
    """

    def __init__(self, session_factory, pwd_ctx: CryptContext):
        self.session_factory = session_factory
        self.pwd_ctx = pwd_ctx

    async def register(self, payload: RegisterIn) -> UserOut:
        hashed = await run_in_threadpool(self.pwd_ctx.hash, payload.password)
        async with self.session_factory() as session:
            user = User(
                username=payload.username,
                hashed_password=hashed,
                first_name=payload.first_name,
                last_name=payload.last_name,
                phone=payload.phone,
                join_at=utcnow(),
                last_login_at=None,
            )
            session.add(user)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise ConflictError(f'Username already taken: {payload.username}')
            created = UserOut.model_validate(user)
        metrics.registrations_total.inc()
        logger.info({'msg': 'user_registered', 'username': created.username})
        return created

    async def authenticate(self, username: str, password: str) -> bool:
        """Check a password. Raises NotFoundError for an unknown username."""
        async with self.session_factory() as session:
            q = await session.execute(select(User.hashed_password).where(User.username == username))
            hashed = q.scalars().first()
        if hashed is None:
            # same cost as a real comparison
            await run_in_threadpool(self.pwd_ctx.dummy_verify)
            raise NotFoundError(f'No such user: {username}')
        return await run_in_threadpool(self.pwd_ctx.verify, password, hashed)

    async def update_login_timestamp(self, username: str):
        async with self.session_factory() as session:
            res = await session.execute(
                update(User)
                .where(User.username == username)
                .values(last_login_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            await session.commit()
        if res.rowcount == 0:
            raise NotFoundError(f'No such user: {username}')

    async def login(self, username: str, password: str):
        try:
            ok = await self.authenticate(username, password)
        except NotFoundError:
            ok = False
        if not ok:
            metrics.login_attempts_total.labels(outcome='failure').inc()
            logger.info({'msg': 'login_failed'})
            raise AuthenticationFailed()
        await self.update_login_timestamp(username)
        metrics.login_attempts_total.labels(outcome='success').inc()
        logger.info({'msg': 'login_succeeded', 'username': username})


class UserDirectory:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def get(self, username: str) -> UserOut:
        async with self.session_factory() as session:
            user = await _require_user(session, username)
            return UserOut.model_validate(user)

    async def all(self) -> list[UserSummary]:
        async with self.session_factory() as session:
            q = await session.execute(select(User).order_by(User.username))
            return [UserSummary.model_validate(u) for u in q.scalars().all()]

    async def messages_from(self, username: str) -> list[SentMessageOut]:
        async with self.session_factory() as session:
            await _require_user(session, username)
            q = (
                select(Message)
                .options(joinedload(Message.to_user))
                .where(Message.from_username == username)
                .order_by(Message.sent_at.asc(), Message.id.asc())
            )
            res = await session.execute(q)
            return [SentMessageOut.model_validate(m) for m in res.scalars().all()]

    async def messages_to(self, username: str) -> list[ReceivedMessageOut]:
        async with self.session_factory() as session:
            await _require_user(session, username)
            q = (
                select(Message)
                .options(joinedload(Message.from_user))
                .where(Message.to_username == username)
                .order_by(Message.sent_at.asc(), Message.id.asc())
            )
            res = await session.execute(q)
            return [ReceivedMessageOut.model_validate(m) for m in res.scalars().all()]


class MessageLedger:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def create(self, from_username: str, to_username: str, body: str) -> MessageOut:
        async with self.session_factory() as session:
            sender = await _require_user(session, from_username)
            recipient = sender if to_username == from_username else await _require_user(session, to_username)
            m = Message(from_user=sender, to_user=recipient, body=body, sent_at=utcnow(), read_at=None)
            session.add(m)
            await session.commit()
            created = MessageOut.model_validate(m)
        metrics.messages_sent_total.inc()
        logger.info({'msg': 'message_created', 'id': created.id, 'from': from_username, 'to': to_username})
        return created

    async def get(self, message_id: int) -> MessageOut:
        async with self.session_factory() as session:
            q = await session.execute(
                select(Message)
                .options(joinedload(Message.from_user), joinedload(Message.to_user))
                .where(Message.id == message_id)
            )
            m = q.scalars().first()
            if not m:
                raise NotFoundError(f'No such message: {message_id}')
            return MessageOut.model_validate(m)

    async def mark_read(self, message_id: int) -> ReadReceiptOut:
        async with self.session_factory() as session:
            # read_at moves from null exactly once
            res = await session.execute(
                update(Message)
                .where(Message.id == message_id, Message.read_at.is_(None))
                .values(read_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            q = await session.execute(select(Message.id, Message.read_at).where(Message.id == message_id))
            row = q.first()
            if row is None:
                raise NotFoundError(f'No such message: {message_id}')
            await session.commit()
        if res.rowcount:
            metrics.messages_read_total.inc()
            logger.info({'msg': 'message_read', 'id': message_id})
        return ReadReceiptOut(id=row.id, read_at=row.read_at)
