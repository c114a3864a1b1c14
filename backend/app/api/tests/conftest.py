import pytest

from app.core.config import get_settings


@pytest.fixture(autouse=True)
def _isolated_cache_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("CACHE_DIR", str(tmp_path / "cache"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _reset_handlers():
    import app.services.query_interpreter as interpreter_mod
    import app.services.smart_query as smart_query_mod

    smart_query_mod._handlers.clear()
    interpreter_mod._interpreter = None
    yield
    smart_query_mod._handlers.clear()
    interpreter_mod._interpreter = None
