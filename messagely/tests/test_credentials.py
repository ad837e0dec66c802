import pytest
from messagely.errors import AuthenticationFailed, ConflictError, NotFoundError
from conftest import make_user


@pytest.mark.asyncio
async def test_register_returns_profile_without_hash(credentials, users):
    created = await credentials.register(make_user('alice', password='p', first_name='A', last_name='L', phone='555'))
    assert created.username == 'alice'
    assert 'hashed_password' not in created.model_dump()
    assert 'password' not in created.model_dump()

    fetched = await users.get('alice')
    assert fetched.model_dump(exclude={'join_at'}) == {
        'username': 'alice',
        'first_name': 'A',
        'last_name': 'L',
        'phone': '555',
        'last_login_at': None,
    }
    assert fetched.join_at is not None


@pytest.mark.asyncio
async def test_duplicate_username_conflicts(credentials, users):
    await credentials.register(make_user('alice', password='first', phone='111'))
    with pytest.raises(ConflictError):
        await credentials.register(make_user('alice', password='second', phone='222'))

    # first registration is untouched
    assert (await users.get('alice')).phone == '111'
    assert await credentials.authenticate('alice', 'first') is True
    assert await credentials.authenticate('alice', 'second') is False


@pytest.mark.asyncio
async def test_usernames_are_case_sensitive(credentials, users):
    await credentials.register(make_user('alice'))
    await credentials.register(make_user('Alice'))
    assert [u.username for u in await users.all()] == ['Alice', 'alice']


@pytest.mark.asyncio
async def test_authenticate(alice_and_bob, credentials):
    assert await credentials.authenticate('alice', 'alicepw') is True
    assert await credentials.authenticate('alice', 'wrong') is False
    with pytest.raises(NotFoundError):
        await credentials.authenticate('carol', 'anything')


@pytest.mark.asyncio
async def test_login_failures_are_indistinguishable(alice_and_bob, credentials):
    with pytest.raises(AuthenticationFailed) as wrong_password:
        await credentials.login('alice', 'wrong')
    with pytest.raises(AuthenticationFailed) as unknown_user:
        await credentials.login('carol', 'alicepw')
    assert wrong_password.value.message == unknown_user.value.message
    assert wrong_password.value.status_code == unknown_user.value.status_code == 401


@pytest.mark.asyncio
async def test_login_updates_last_login(alice_and_bob, credentials, users):
    assert (await users.get('alice')).last_login_at is None
    await credentials.login('alice', 'alicepw')
    assert (await users.get('alice')).last_login_at is not None
    # a failed login leaves bob alone
    with pytest.raises(AuthenticationFailed):
        await credentials.login('bob', 'nope')
    assert (await users.get('bob')).last_login_at is None


@pytest.mark.asyncio
async def test_update_login_timestamp(alice_and_bob, credentials, users):
    await credentials.update_login_timestamp('bob')
    first = (await users.get('bob')).last_login_at
    assert first is not None
    await credentials.update_login_timestamp('bob')
    assert (await users.get('bob')).last_login_at >= first

    with pytest.raises(NotFoundError):
        await credentials.update_login_timestamp('nobody')


@pytest.mark.asyncio
async def test_password_is_stored_as_bcrypt_hash(alice_and_bob, app):
    from sqlalchemy import select
    from messagely.models import make_sessionmaker
    from messagely.models.users import User

    async with make_sessionmaker(app.state.engine)() as session:
        q = await session.execute(select(User.hashed_password).where(User.username == 'alice'))
        hashed = q.scalars().first()
    assert hashed != 'alicepw'
    assert hashed.startswith('$2b$04$')


@pytest.mark.asyncio
async def test_hashing_does_not_stall_the_event_loop(settings):
    import asyncio
    import dataclasses
    import time
    from messagely.auth import make_password_context
    from messagely.crud import CredentialStore
    from messagely.models import make_engine, make_sessionmaker, create_tables

    # production cost, where a single hash takes a noticeable fraction of a second
    slow = dataclasses.replace(settings, bcrypt_work_factor=12)
    engine = make_engine(slow.database_url)
    await create_tables(engine)
    store = CredentialStore(make_sessionmaker(engine), make_password_context(slow))

    gaps = []
    done = asyncio.Event()

    async def ticker():
        last = time.perf_counter()
        while not done.is_set():
            await asyncio.sleep(0.01)
            now = time.perf_counter()
            gaps.append(now - last)
            last = now

    task = asyncio.create_task(ticker())
    try:
        await store.register(make_user('alice', password='alicepw'))
        assert await store.authenticate('alice', 'alicepw') is True
        with pytest.raises(NotFoundError):
            await store.authenticate('ghost', 'alicepw')
    finally:
        done.set()
        await task
        await engine.dispose()

    assert gaps
    assert max(gaps) < 0.1
