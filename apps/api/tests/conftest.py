import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from database import Base
from main import app
from models.user import User
from routers import rate_limit
from services.store_health import StoreHealth
from services.url_preview import UrlPreviewFetcher
from vault_fakes import VAULT_OTHER_USER_ID, VAULT_USER_ID, FailingChannel, RecordingFileStorage


@pytest.fixture(autouse=True)
def isolate_app_state():
    """Keep rate-limit counters and the store readiness verdict per test."""
    previous = getattr(app.state, "disable_rate_limits", False)
    app.state.disable_rate_limits = True
    app.state.store_health = StoreHealth()
    rate_limit.reset_local_counters()
    yield
    rate_limit.reset_local_counters()
    app.state.store_health = StoreHealth()
    app.state.disable_rate_limits = previous


@pytest.fixture
def file_storage(tmp_path):
    return RecordingFileStorage(root=str(tmp_path / "media"))


@pytest.fixture
def offline_fetcher():
    """Fetcher whose every channel fails; platform URLs still resolve locally."""
    return UrlPreviewFetcher(channels=[FailingChannel("direct"), FailingChannel("allorigins")])


@pytest_asyncio.fixture
async def vault_session_maker(tmp_path):
    db_path = tmp_path / "vault.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with session_maker() as session:
        session.add_all(
            [
                User(id=VAULT_USER_ID, email="vault-user@example.com"),
                User(id=VAULT_OTHER_USER_ID, email="vault-other@example.com"),
            ]
        )
        await session.commit()

    yield session_maker
    await engine.dispose()
