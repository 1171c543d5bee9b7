"""Tests for AuthSessionManager."""

import asyncio

import pytest
from conftest import FakeAuthClient, make_session

from zomatify.domain.schemas import Profile
from zomatify.exceptions import AuthError
from zomatify.services.auth_service import AuthSessionManager


def make_manager(client, **kwargs) -> AuthSessionManager:
    kwargs.setdefault("profile_timeout", 1.0)
    kwargs.setdefault("debounce_seconds", 0.05)
    return AuthSessionManager(client, **kwargs)


class TestInitialize:
    """Tests for start()/initialize()."""

    @pytest.mark.asyncio
    async def test_no_session(self, auth_client):
        manager = make_manager(auth_client)

        await manager.start()

        assert manager.state.user is None
        assert manager.state.profile is None
        assert manager.state.loading is False
        assert auth_client.fetch_calls == []

    @pytest.mark.asyncio
    async def test_existing_session_loads_profile(self):
        client = FakeAuthClient(session=make_session("user-1"))
        client.profiles["user-1"] = Profile(id="user-1", first_name="Asha")
        manager = make_manager(client)

        await manager.start()

        assert manager.is_authenticated
        assert manager.state.profile.first_name == "Asha"
        assert manager.state.loading is False

    @pytest.mark.asyncio
    async def test_double_start_fetches_profile_once(self):
        """Two concurrent starts resolve the session with a single lookup."""
        client = FakeAuthClient(session=make_session("user-1"), profile_delay=0.02)
        client.profiles["user-1"] = Profile(id="user-1")
        manager = make_manager(client)

        await asyncio.gather(manager.start(), manager.start())

        assert client.fetch_calls == ["user-1"]
        assert len(client.callbacks) == 1
        assert manager.state.profile is not None
        assert manager.state.loading is False

    @pytest.mark.asyncio
    async def test_profile_timeout_stops_loading(self):
        """A profile lookup that never answers leaves the user without a profile."""
        client = FakeAuthClient(session=make_session("user-1"), profile_delay=0.2)
        client.profiles["user-1"] = Profile(id="user-1")
        manager = make_manager(client, profile_timeout=0.05)

        await manager.start()

        assert manager.state.user.id == "user-1"
        assert manager.state.profile is None
        assert manager.state.loading is False
        assert manager.fetching_profile == set()

        # the slow lookup still completes, its result is not applied
        await asyncio.sleep(0.3)
        assert manager.state.profile is None
        assert manager._tasks == set()

    @pytest.mark.asyncio
    async def test_missing_profile_created_from_metadata(self):
        client = FakeAuthClient(
            session=make_session(
                "user-1",
                first_name="Asha",
                last_name="Rao",
                phone_number="9999999999",
            )
        )
        manager = make_manager(client)

        await manager.start()

        assert client.inserted == [
            {
                "id": "user-1",
                "email": "user-1@example.com",
                "first_name": "Asha",
                "last_name": "Rao",
                "phone_number": "9999999999",
                "role": "customer",
            }
        ]
        assert manager.state.profile.role == "customer"
        assert manager.state.profile.last_name == "Rao"


class TestSessionEvents:
    """Tests for debounced session change notifications."""

    @pytest.mark.asyncio
    async def test_initial_session_event_is_discarded(self, auth_client):
        manager = make_manager(auth_client)
        await manager.start()

        assert manager.initial_event_discarded is True
        assert manager._pending_event is None

    @pytest.mark.asyncio
    async def test_debounce_applies_latest_event_only(self, auth_client):
        auth_client.profiles["user-a"] = Profile(id="user-a")
        auth_client.profiles["user-b"] = Profile(id="user-b")
        manager = make_manager(auth_client)
        await manager.start()

        auth_client.emit("SIGNED_IN", make_session("user-a"))
        auth_client.emit("SIGNED_IN", make_session("user-b"))
        await asyncio.sleep(0.2)

        assert manager.state.user.id == "user-b"
        assert manager.state.profile.id == "user-b"
        assert auth_client.fetch_calls == ["user-b"]

    @pytest.mark.asyncio
    async def test_signed_out_clears_state(self):
        client = FakeAuthClient(session=make_session("user-1"))
        client.profiles["user-1"] = Profile(id="user-1")
        manager = make_manager(client)
        await manager.start()

        client.emit("SIGNED_OUT", None)
        await asyncio.sleep(0.2)

        assert manager.state.user is None
        assert manager.state.profile is None
        assert manager.state.session is None
        assert manager.state.loading is False

    @pytest.mark.asyncio
    async def test_token_refresh_for_same_user_keeps_profile(self):
        client = FakeAuthClient(session=make_session("user-1"))
        client.profiles["user-1"] = Profile(id="user-1", first_name="Asha")
        manager = make_manager(client)
        await manager.start()

        refreshed = make_session("user-1")
        refreshed.access_token = "token-refreshed"
        client.emit("TOKEN_REFRESHED", refreshed)
        await asyncio.sleep(0.2)

        assert manager.state.session.access_token == "token-refreshed"
        assert manager.state.profile.first_name == "Asha"

    @pytest.mark.asyncio
    async def test_events_after_stop_are_ignored(self):
        client = FakeAuthClient(session=make_session("user-1"))
        client.profiles["user-1"] = Profile(id="user-1")
        manager = make_manager(client)
        await manager.start()

        manager.stop()
        client.emit("SIGNED_OUT", None)
        await asyncio.sleep(0.2)

        assert client.callbacks == []
        assert manager.state.user.id == "user-1"

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_event(self, auth_client):
        auth_client.profiles["user-a"] = Profile(id="user-a")
        manager = make_manager(auth_client)
        await manager.start()

        auth_client.emit("SIGNED_IN", make_session("user-a"))
        manager.stop()
        await asyncio.sleep(0.2)

        assert manager.state.user is None
        assert auth_client.fetch_calls == []

    @pytest.mark.asyncio
    async def test_restart_discards_replayed_initial_session(self):
        """A new subscription after stop() replays INITIAL_SESSION, which initialize() covers."""
        client = FakeAuthClient(session=make_session("user-1"))
        client.profiles["user-1"] = Profile(id="user-1")
        manager = make_manager(client)

        await manager.start()
        manager.stop()
        await manager.start()
        await asyncio.sleep(0.2)

        assert manager._pending_event is None
        assert client.fetch_calls == ["user-1", "user-1"]
        assert manager.state.profile is not None


class TestOperations:
    """Tests for sign in/up/out and profile updates."""

    @pytest.mark.asyncio
    async def test_sign_in(self, auth_client):
        auth_client.profiles["user-1"] = Profile(id="user-1")
        manager = make_manager(auth_client)
        await manager.start()

        result = await manager.sign_in("user-1@example.com", "secret")

        assert result.success is True
        assert manager.state.user.id == "user-1"
        assert manager.state.loading is False

    @pytest.mark.asyncio
    async def test_sign_in_event_applied_once(self, auth_client):
        """The SIGNED_IN notification from the client does not trigger a second lookup."""
        auth_client.profiles["user-1"] = Profile(id="user-1")
        manager = make_manager(auth_client)
        await manager.start()

        await manager.sign_in("user-1@example.com", "secret")
        await asyncio.sleep(0.2)

        assert manager._pending_event is None
        assert auth_client.fetch_calls == ["user-1"]
        assert manager.state.profile.id == "user-1"

    @pytest.mark.asyncio
    async def test_sign_out_event_applied_once(self):
        client = FakeAuthClient(session=make_session("user-1"))
        client.profiles["user-1"] = Profile(id="user-1")
        manager = make_manager(client)
        await manager.start()
        seen = []
        manager.add_listener(seen.append)

        await manager.sign_out()
        assert manager._pending_event is None
        await asyncio.sleep(0.2)

        # loading, then cleared; no replay from the debounced event
        assert len(seen) == 2
        assert manager.state.user is None

    @pytest.mark.asyncio
    async def test_sign_in_failure(self, auth_client):
        auth_client.sign_in_error = AuthError("Invalid login credentials", status_code=400)
        manager = make_manager(auth_client)
        await manager.start()

        result = await manager.sign_in("user-1@example.com", "wrong")

        assert result.success is False
        assert result.error == "Invalid login credentials"
        assert manager.state.error == "Invalid login credentials"
        assert manager.state.loading is False

    @pytest.mark.asyncio
    async def test_sign_up(self, auth_client):
        manager = make_manager(auth_client)
        await manager.start()

        result = await manager.sign_up("new@example.com", "secret", "Asha", "Rao")

        assert result.success is True
        assert manager.state.loading is False

    @pytest.mark.asyncio
    async def test_sign_out(self):
        client = FakeAuthClient(session=make_session("user-1"))
        client.profiles["user-1"] = Profile(id="user-1")
        manager = make_manager(client)
        await manager.start()

        result = await manager.sign_out()

        assert result.success is True
        assert manager.state.user is None
        assert manager.state.profile is None

    @pytest.mark.asyncio
    async def test_update_profile_requires_user(self, auth_client):
        manager = make_manager(auth_client)
        await manager.start()

        result = await manager.update_profile({"first_name": "Asha"})

        assert result.success is False
        assert result.error == "User not authenticated"

    @pytest.mark.asyncio
    async def test_update_profile(self):
        client = FakeAuthClient(session=make_session("user-1"))
        client.profiles["user-1"] = Profile(id="user-1", first_name="Asha")
        manager = make_manager(client)
        await manager.start()

        result = await manager.update_profile({"first_name": "Meera"})

        assert result.success is True
        assert manager.state.profile.first_name == "Meera"

    @pytest.mark.asyncio
    async def test_listeners_see_state_changes(self, auth_client):
        manager = make_manager(auth_client)
        seen = []
        remove = manager.add_listener(seen.append)

        await manager.start()
        remove()
        await manager.sign_out()

        assert seen[-1].loading is False
        assert all(s.user is None for s in seen)
        assert len(seen) == 2
