import asyncio
import inspect
import pathlib
import sys
from contextlib import asynccontextmanager

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.config import AppSettings  # noqa: E402
from app.db.session import Database  # noqa: E402
from app.main import create_app  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used in the suite."""

    config.addinivalue_line("markers", "asyncio: mark test as running in an asyncio event loop")


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Run coroutine tests on a fresh event loop with only their declared fixtures."""

    test_function = pyfuncitem.obj
    if not inspect.iscoroutinefunction(test_function):
        return None
    kwargs = {name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames}
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        loop.run_until_complete(test_function(**kwargs))
    finally:
        asyncio.set_event_loop(None)
        loop.close()
    return True


@pytest.fixture
def open_client(tmp_path: pathlib.Path):
    """Factory for an HTTP client bound to a fresh app over a temporary sqlite file.

    The returned context manager yields ``(client, database)`` with the app
    lifespan running, so tables and the storage bucket already exist.
    """

    database = Database(url=f"sqlite+aiosqlite:///{tmp_path / 'ibkr_hub.db'}")
    settings = AppSettings(database_url=database.url, storage_root=str(tmp_path / "storage"))

    @asynccontextmanager
    async def _open(llm=None):
        app = create_app(database, settings, llm=llm)
        async with app.router.lifespan_context(app):
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                yield client, database

    return _open
