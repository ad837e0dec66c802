import os
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Configure test environment before the module-level app in messagely.main is built
os.environ.setdefault('DATABASE_URL', 'sqlite+aiosqlite:///./messagely-test.db')
os.environ.setdefault('BCRYPT_WORK_FACTOR', '4')

from messagely.config import Settings  # noqa: E402
from messagely.main import create_app  # noqa: E402
from messagely.models import create_tables  # noqa: E402
from messagely.schemas.users import RegisterIn  # noqa: E402


def make_user(username: str, password: str = 'secret', **fields) -> RegisterIn:
    data = {
        'username': username,
        'password': password,
        'first_name': username.capitalize(),
        'last_name': 'Tester',
        'phone': '555-0100',
    }
    data.update(fields)
    return RegisterIn(**data)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'messagely.db'}",
        secret_key='test-secret',
        bcrypt_work_factor=4,
    )


@pytest_asyncio.fixture
async def app(settings):
    app = create_app(settings)
    await create_tables(app.state.engine)
    yield app
    await app.state.engine.dispose()


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url='http://test') as ac:
        yield ac


@pytest.fixture
def credentials(app):
    return app.state.credentials


@pytest.fixture
def users(app):
    return app.state.users


@pytest.fixture
def ledger(app):
    return app.state.messages


@pytest_asyncio.fixture
async def alice_and_bob(credentials):
    alice = await credentials.register(make_user('alice', password='alicepw', first_name='A', last_name='L', phone='555'))
    bob = await credentials.register(make_user('bob', password='bobpw'))
    return alice, bob
