"""Test sign-in, persistence and sign-out of the user session."""
import json

import pytest
from verticals.bookstore.session import Session


@pytest.fixture
def session_path(tmp_path):
    return tmp_path / "bookstore" / "session.json"


@pytest.mark.asyncio
async def test_sign_in_persists_user_without_password(client, session_path):
    session = Session(session_path)
    result = await session.sign_in(client, "admin", "admin123")

    assert result.success
    assert result.user.username == "admin"
    assert result.user.password is None
    assert session.is_authenticated

    stored = json.loads(session_path.read_text())
    assert stored["username"] == "admin"
    assert stored["role"] == "manager"
    assert "password" not in stored


@pytest.mark.asyncio
async def test_sign_in_rejects_bad_credentials(client, session_path):
    session = Session(session_path)
    result = await session.sign_in(client, "admin", "wrong")
    assert not result.success
    assert result.error == "Invalid username or password"
    assert not session.is_authenticated
    assert not session_path.exists()


@pytest.mark.asyncio
async def test_sign_in_network_error(client, server, session_path):
    server.fail_on("GET", "users")
    result = await Session(session_path).sign_in(client, "admin", "admin123")
    assert not result.success
    assert result.error == "An error occurred during sign in"


@pytest.mark.asyncio
async def test_hydrate_restores_signed_in_user(client, session_path):
    await Session(session_path).sign_in(client, "admin", "admin123")
    restored = Session(session_path)
    assert restored.hydrate().username == "admin"
    assert restored.is_authenticated


def test_hydrate_discards_corrupt_file(session_path):
    session_path.parent.mkdir(parents=True)
    session_path.write_text("{not json")
    session = Session(session_path)
    assert session.hydrate() is None
    assert not session_path.exists()


def test_hydrate_unreadable_path_behaves_like_corrupt_file(session_path):
    session_path.mkdir(parents=True)
    session = Session(session_path)
    assert session.hydrate() is None
    assert not session.is_authenticated


def test_hydrate_without_file(session_path):
    assert Session(session_path).hydrate() is None


@pytest.mark.asyncio
async def test_sign_out_clears_memory_and_disk(client, session_path):
    session = Session(session_path)
    await session.sign_in(client, "admin", "admin123")
    session.sign_out()
    assert not session.is_authenticated
    assert not session_path.exists()
