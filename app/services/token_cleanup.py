"""Scheduler for periodic removal of expired session tokens."""

import asyncio
import contextlib
import logging

from sqlalchemy.orm import Session, sessionmaker

from app.config import get_settings
from app.database import SessionLocal
from app.services.tokens import TokenService, get_token_service

logger = logging.getLogger("accounts.token_cleanup")


class TokenCleanupScheduler:
    """Sweeps expired tokens every interval on the running event loop.

    The first sweep happens one full interval after ``start()``. Sweeps run in
    a worker thread so request handling is never blocked, and a failed sweep
    is logged without stopping the schedule.
    """

    def __init__(
        self,
        interval_seconds: float | None = None,
        session_factory: sessionmaker | None = None,
        token_service: TokenService | None = None,
    ) -> None:
        self.interval_seconds = interval_seconds or get_settings().TOKEN_CLEANUP_INTERVAL_SECONDS
        self.session_factory = session_factory or SessionLocal
        self.token_service = token_service or get_token_service()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> "TokenCleanupScheduler":
        """Start the sweep loop. Calling it again while running is a no-op."""
        if self.running:
            logger.debug("Token cleanup scheduler already running")
            return self
        self._task = asyncio.get_running_loop().create_task(self._run(), name="token-cleanup")
        logger.info("Token cleanup scheduler started (interval: %ss)", self.interval_seconds)
        return self

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("Token cleanup scheduler stopped")

    def sweep(self) -> int:
        """Run one sweep in a fresh session. Returns the number of deleted tokens."""
        db: Session = self.session_factory()
        try:
            deleted = self.token_service.sweep_expired(db)
        finally:
            db.close()
        if deleted:
            logger.info("Token cleanup removed %d expired tokens", deleted)
        return deleted

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await asyncio.to_thread(self.sweep)
            except Exception:
                logger.exception("Token cleanup sweep failed")
