"""Settings and application startup tests."""

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from shortlinks.config import Settings
from shortlinks.errors import ConfigurationError
from shortlinks.main import create_app
from shortlinks.models import ShortLink
from shortlinks.registry import LinkRegistry


def test_require_base_url_strips_trailing_slash() -> None:
    settings = Settings(_env_file=None, BASE_URL="https://sho.rt/")
    assert settings.require_base_url() == "https://sho.rt"


@pytest.mark.parametrize("base_url", [None, "", "   "])
def test_require_base_url_missing(base_url: str | None) -> None:
    settings = Settings(_env_file=None, BASE_URL=base_url)
    with pytest.raises(ConfigurationError):
        settings.require_base_url()


def test_defaults() -> None:
    settings = Settings(_env_file=None)
    assert settings.SLUG_CACHE_MAX_SIZE == 10_000
    assert settings.SLUG_CACHE_SWEEP_INTERVAL_SECONDS == 60.0
    assert settings.STORE_TIMEOUT_SECONDS is None
    assert settings.JWT_ALGORITHM == "HS256"


@pytest.mark.asyncio
async def test_startup_fails_without_base_url() -> None:
    app = create_app(Settings(_env_file=None, BASE_URL=None))

    with pytest.raises(ConfigurationError):
        async with app.router.lifespan_context(app):
            pass
    assert not app.state.service_manager.initialized


@pytest.mark.asyncio
async def test_app_uses_database_from_its_settings(tmp_path) -> None:
    db_path = tmp_path / "factory.db"
    settings = Settings(
        _env_file=None,
        BASE_URL="http://sho.rt",
        DATABASE_URL=f"sqlite+aiosqlite:///{db_path}",
    )
    app = create_app(settings)

    async with app.router.lifespan_context(app):
        assert app.state.service_manager.engine.url.database == str(db_path)
        async with app.state.service_manager.session_factory() as session:
            await LinkRegistry(session).create(ShortLink(slug="fac001", original_url="https://example.com"))

    # Startup created the table in this database and sessions were bound to it
    engine = create_async_engine(settings.DATABASE_URL)
    try:
        async with engine.connect() as conn:
            stored = await conn.scalar(text("SELECT original_url FROM short_links WHERE slug = 'fac001'"))
    finally:
        await engine.dispose()
    assert stored == "https://example.com"
