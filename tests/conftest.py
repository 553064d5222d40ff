import pytest

from src.dairy_delivery.db import supabase as supabase_module
from tests.fakes import FakeSupabase


@pytest.fixture
def fake_db(monkeypatch: pytest.MonkeyPatch) -> FakeSupabase:
    """A fresh in-memory store, also served as the cached Supabase client."""
    db = FakeSupabase()
    monkeypatch.setattr(supabase_module, "get_supabase_client", lambda: db)
    return db
