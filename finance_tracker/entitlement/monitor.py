"""
Entitlement Monitor

Holds the entitlement of the signed-in user for the lifetime of a
session and keeps it fresh:
- on session start (and whenever the signed-in user changes)
- on a fixed polling interval
- on explicit refresh, e.g. after returning from checkout

Observers register a callback and are told whenever the state changes.
A failed refresh keeps the last known state and records the error.
"""

import asyncio
from typing import Callable, Optional

import structlog

from finance_tracker.entitlement.resolver import EntitlementResolver
from finance_tracker.errors import FinanceTrackerError
from finance_tracker.models.entitlement import EntitlementState, UserIdentity


logger = structlog.get_logger(__name__)


Observer = Callable[[EntitlementState], None]


class EntitlementMonitor:
    """Session-scoped entitlement state with periodic refresh."""

    def __init__(
        self,
        resolver: EntitlementResolver,
        poll_seconds: float = 60.0,
    ):
        self._resolver = resolver
        self._poll_seconds = poll_seconds
        self._user: Optional[UserIdentity] = None
        self._state = EntitlementState.unsubscribed()
        self._observers: list[Observer] = []
        self._task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()
        # Bumped by every start, stop and sign-out
        self._session = 0
        self.last_error: Optional[FinanceTrackerError] = None
        self.loading = False

    @property
    def current(self) -> EntitlementState:
        return self._state

    @property
    def user(self) -> Optional[UserIdentity]:
        return self._user

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer; returns a function that unregisters it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _set_state(self, state: EntitlementState) -> None:
        if state == self._state:
            return
        self._state = state
        for observer in list(self._observers):
            try:
                observer(state)
            except Exception:
                logger.exception("entitlement_observer_failed")

    async def refresh(self) -> EntitlementState:
        """
        Re-resolve the current user's entitlement now.

        On failure the previous state is kept and the error is stored
        in `last_error`; the error is not raised.
        """
        user = self._user
        if user is None:
            self._set_state(EntitlementState.unsubscribed())
            return self._state

        self.loading = True
        try:
            state = await self._resolver.resolve(user)
        except FinanceTrackerError as e:
            self.last_error = e
            logger.warning(
                "entitlement_refresh_failed",
                user_id=user.id,
                error_kind=e.kind.value,
                error=str(e),
            )
            return self._state
        finally:
            self.loading = False

        # Ignore a result for a user who signed out while we were waiting
        if self._user is None or self._user.id != user.id:
            return self._state

        self.last_error = None
        self._set_state(state)
        return self._state

    async def start(self, user: UserIdentity) -> EntitlementState:
        """
        Begin monitoring `user`: resolve now, then poll.

        Polling only begins if no other start, stop or sign-out happened
        while the first resolution was in flight.
        """
        async with self._lock:
            await self._cancel_poll()
            if self._user is None or self._user.id != user.id:
                self._set_state(EntitlementState.unsubscribed())
            self._user = user
            self._session += 1
            session = self._session

        state = await self.refresh()

        async with self._lock:
            if self._session == session and self._task is None:
                self._task = asyncio.create_task(self._poll())
        return state

    async def stop(self) -> None:
        """Stop polling. The last known state is kept."""
        async with self._lock:
            self._session += 1
            await self._cancel_poll()

    async def on_session_change(self, user: Optional[UserIdentity]) -> EntitlementState:
        """
        React to sign-in, sign-out or a user switch.

        Signing out stops polling and resets to unsubscribed.
        """
        if user is None:
            async with self._lock:
                self._session += 1
                await self._cancel_poll()
                self._user = None
                self.last_error = None
                self._set_state(EntitlementState.unsubscribed())
            return self._state
        return await self.start(user)

    async def _cancel_poll(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self._poll_seconds)
            await self.refresh()
