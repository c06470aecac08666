import types
import pytest

from bakery.auth import repository as repo
from bakery.auth import service as svc
from bakery.infra import supabase_client


def _fake_client(user):
    auth = types.SimpleNamespace(get_user=lambda token: types.SimpleNamespace(user=user))
    return types.SimpleNamespace(auth=auth)

def test_user_from_token_normalizes_email(monkeypatch):
    monkeypatch.setattr(svc, "_repo_get_user_from_token", lambda token: {
        "id": "u1", "email": "  Sara@Example.com ", "user_metadata": {"full_name": "Sara"},
    })

    user = svc.get_user_from_token("tok")

    assert user == {"id": "u1", "email": "sara@example.com", "metadata": {"full_name": "Sara"}, "token": "tok"}

def test_user_from_token_without_email(monkeypatch):
    monkeypatch.setattr(svc, "_repo_get_user_from_token", lambda token: {})
    user = svc.get_user_from_token("tok")
    assert user["email"] == ""
    assert user["metadata"] == {}

def test_repository_reads_object_user(monkeypatch):
    obj = types.SimpleNamespace(id="u2", email="omar@example.com", user_metadata={"a": 1})
    monkeypatch.setattr(repo, "get_supabase", lambda: _fake_client(obj))

    assert repo.get_user_from_access_token("tok") == {"id": "u2", "email": "omar@example.com", "user_metadata": {"a": 1}}

def test_repository_missing_user(monkeypatch):
    monkeypatch.setattr(repo, "get_supabase", lambda: _fake_client(None))
    assert repo.get_user_from_access_token("tok") == {}

def test_supabase_client_requires_config(monkeypatch):
    monkeypatch.setattr(supabase_client, "_supabase", None)
    monkeypatch.setattr(supabase_client, "SUPABASE_URL", "")
    with pytest.raises(RuntimeError):
        supabase_client.get_supabase()
