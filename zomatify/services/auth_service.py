# zomatify/services/auth_service.py
import asyncio
from typing import Any, Callable, Dict, List

from zomatify.domain.schemas import AuthResult, AuthSession, AuthState, Profile
from zomatify.exceptions import AuthError, ProfileNotFoundError
from zomatify.utils.settings import AUTH_DEBOUNCE_SECONDS, PROFILE_FETCH_TIMEOUT_SECONDS
from zomatify.utils.logging import get_logger

logger = get_logger(__name__)

StateListener = Callable[[AuthState], None]


class AuthSessionManager:
    """
    Single source of truth for who is logged in.

    Lifecycle: start() subscribes to session changes and resolves the
    current session, stop() unsubscribes. After stop() every state write
    is dropped, but requests already in flight are not aborted.

    Guards kept on the instance:
    - initializing: only one initialize() runs at a time
    - initial_event_discarded: the INITIAL_SESSION notification is ignored,
      initialize() already covers it
    - fetching_profile: user ids with a profile lookup in flight
    - mounted: state writes allowed
    """

    def __init__(
        self,
        client,
        profile_timeout: float | None = None,
        debounce_seconds: float | None = None,
    ):
        self.client = client
        self.profile_timeout = (
            PROFILE_FETCH_TIMEOUT_SECONDS if profile_timeout is None else profile_timeout
        )
        self.debounce_seconds = (
            AUTH_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        )
        self.state = AuthState()

        self.mounted = False
        self.initializing = False
        self.initial_event_discarded = False
        self.fetching_profile: set[str] = set()

        self._subscription = None
        self._pending_event: tuple[str, AuthSession | None] | None = None
        self._debounce_handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()
        self._listeners: List[StateListener] = []

    @property
    def is_authenticated(self) -> bool:
        return self.state.user is not None

    def add_listener(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    # lifecycle
    async def start(self) -> None:
        self.mounted = True
        if self._subscription is None:
            self._subscription = self.client.on_auth_state_change(self._on_auth_state_change)
        await self.initialize()

    def stop(self) -> None:
        self.mounted = False
        # the next subscription replays INITIAL_SESSION again
        self.initial_event_discarded = False
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None
        self._pending_event = None
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        logger.info("Auth session manager stopped")

    async def initialize(self) -> None:
        if self.initializing:
            logger.debug("Auth initialization already running, skipping")
            return

        self.initializing = True
        self._set_state(loading=True, error=None)
        try:
            session = await self.client.get_session()
            if session:
                await self._apply_session(session)
            else:
                self._set_state(user=None, profile=None, session=None, loading=False)
        except Exception as e:
            logger.error(f"Error resolving initial session: {e}")
            self._set_state(user=None, profile=None, session=None, loading=False, error=str(e))
        finally:
            self.initializing = False

    # session change notifications
    def _on_auth_state_change(self, event: str, session: AuthSession | None) -> None:
        if event == "INITIAL_SESSION" and not self.initial_event_discarded:
            self.initial_event_discarded = True
            logger.debug("Discarding INITIAL_SESSION, handled by initialize()")
            return

        if not self.mounted:
            return

        # latest event wins, the window restarts on every event
        self._pending_event = (event, session)
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
        loop = asyncio.get_running_loop()
        self._debounce_handle = loop.call_later(self.debounce_seconds, self._flush_pending_event)

    def _flush_pending_event(self) -> None:
        self._debounce_handle = None
        pending, self._pending_event = self._pending_event, None
        if pending is None or not self.mounted:
            return

        self._track(self._apply_event(*pending))

    def _drop_pending_event(self, session: AuthSession | None) -> None:
        """Forget a pending event that only repeats what the caller applies itself."""
        if self._pending_event is None:
            return
        _, pending = self._pending_event
        if session is None:
            same = pending is None
        else:
            same = (
                pending is not None
                and pending.user.id == session.user.id
                and pending.access_token == session.access_token
            )
        if not same:
            return

        logger.debug(f"Dropping pending auth event {self._pending_event[0]}")
        self._pending_event = None
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None

    def _track(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._forget)
        return task

    def _forget(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Background auth task finished with: {task.exception()}")

    async def _apply_event(self, event: str, session: AuthSession | None) -> None:
        logger.info(f"Applying auth event {event}")
        try:
            if event == "SIGNED_OUT" or session is None:
                self._set_state(user=None, profile=None, session=None, loading=False, error=None)
            else:
                await self._apply_session(session)
        except Exception as e:
            logger.error(f"Error applying auth event {event}: {e}")
            self._set_state(loading=False, error=str(e))

    async def _apply_session(self, session: AuthSession) -> None:
        user = session.user
        same_user = self.state.user is not None and self.state.user.id == user.id

        if same_user:
            self._set_state(session=session, user=user)
        else:
            self._set_state(session=session, user=user, profile=None, loading=True, error=None)

        if user.id in self.fetching_profile:
            # the lookup already running settles loading/profile
            logger.debug(f"Profile fetch for {user.id} already in flight")
            return

        profile = await self.fetch_profile(user.id)

        if self.state.user is None or self.state.user.id != user.id:
            return

        if profile is not None:
            self._set_state(profile=profile, loading=False)
        else:
            self._set_state(loading=False)

    # profiles
    async def fetch_profile(self, user_id: str) -> Profile | None:
        """
        Look up (or create) the profile row for user_id.

        Returns None when a lookup for the same user is already running, on
        timeout and on errors; callers treat None as "try again later".
        """
        if user_id in self.fetching_profile:
            logger.debug(f"Skipping duplicate profile fetch for {user_id}")
            return None

        self.fetching_profile.add(user_id)
        lookup = self._track(self._load_profile(user_id))
        try:
            # the lookup is not aborted on timeout, its late result is dropped
            done, _ = await asyncio.wait({lookup}, timeout=self.profile_timeout)
            if not done:
                logger.warning(
                    f"Profile fetch for {user_id} timed out after {self.profile_timeout}s"
                )
                return None
            return lookup.result()
        except Exception as e:
            logger.error(f"Error fetching profile for {user_id}: {e}")
            return None
        finally:
            self.fetching_profile.discard(user_id)

    async def _load_profile(self, user_id: str) -> Profile:
        try:
            return await self.client.fetch_profile(user_id)
        except ProfileNotFoundError:
            logger.info(f"No profile row for {user_id}, creating one")

        user = self.state.user
        if user is None or user.id != user_id:
            user = await self.client.get_user()
        if user is None:
            raise AuthError("User authentication data not available")

        metadata = user.user_metadata or {}
        return await self.client.insert_profile(
            {
                "id": user_id,
                "email": user.email or "",
                "first_name": metadata.get("first_name") or "",
                "last_name": metadata.get("last_name") or "",
                "phone_number": metadata.get("phone_number") or user.phone or "",
                "role": metadata.get("role") or "customer",
            }
        )

    # public operations
    async def sign_in(self, email: str, password: str) -> AuthResult:
        self._set_state(loading=True, error=None)
        try:
            logger.info(f"Signing in {email}")
            session = await self.client.sign_in_with_password(email, password)
            self._drop_pending_event(session)
            await self._apply_session(session)
            return AuthResult(success=True)
        except Exception as e:
            return self._failure("Sign in", e)

    async def sign_up(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone: str | None = None,
        role: str = "customer",
    ) -> AuthResult:
        # the profile row is created by a trigger on the platform side
        self._set_state(loading=True, error=None)
        try:
            logger.info(f"Signing up {email}")
            await self.client.sign_up(
                email,
                password,
                {
                    "first_name": first_name,
                    "last_name": last_name,
                    "phone_number": phone or "",
                    "role": role,
                },
            )
            self._set_state(loading=False, error=None)
            return AuthResult(success=True)
        except Exception as e:
            return self._failure("Sign up", e)

    async def sign_out(self) -> AuthResult:
        self._set_state(loading=True, error=None)
        try:
            await self.client.sign_out()
            self._drop_pending_event(None)
            self._set_state(user=None, profile=None, session=None, loading=False, error=None)
            return AuthResult(success=True)
        except Exception as e:
            return self._failure("Sign out", e)

    async def update_profile(self, changes: Dict[str, Any]) -> AuthResult:
        if self.state.user is None:
            return AuthResult(success=False, error="User not authenticated")

        self._set_state(loading=True, error=None)
        try:
            profile = await self.client.update_profile(self.state.user.id, changes)
            self._set_state(profile=profile, loading=False, error=None)
            return AuthResult(success=True)
        except Exception as e:
            return self._failure("Profile update", e)

    # state
    def _failure(self, action: str, error: Exception) -> AuthResult:
        message = getattr(error, "message", None) or str(error) or "An unexpected error occurred"
        logger.error(f"{action} error: {message}")
        self._set_state(loading=False, error=message)
        return AuthResult(success=False, error=message)

    def _set_state(self, **changes) -> None:
        if not self.mounted:
            return
        self.state = self.state.model_copy(update=changes)
        for listener in list(self._listeners):
            listener(self.state)
