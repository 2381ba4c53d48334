"""
Per-account daily usage window for AI requests.

The window is lazy: nothing runs on a timer. Whenever an account is touched
and at least ``window`` has passed since ``window_start``, the counter goes
back to 0 and the window restarts at "now". An account idle for a week resets
once on its next access.

Default flow (kept for compatibility with existing clients):

    check_admission -> upstream call -> increment

Two concurrent requests from the same account can both pass
``check_admission`` and push ``request_count`` past ``daily_limit``.
``try_consume``/``release`` close that gap with a conditional UPDATE and are
used when ``STRICT_QUOTA`` is enabled.
"""
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from study_helper.core.clock import Clock, as_naive_utc, utcnow
from study_helper.models.user import Account

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = timedelta(hours=24)


@dataclass(frozen=True)
class WindowState:
    request_count: int
    window_start: datetime
    expired: bool


def evaluate_window(
    now: datetime,
    window_start: datetime,
    request_count: int,
    window: timedelta = DEFAULT_WINDOW,
) -> WindowState:
    """Pure window evaluation: no I/O, no mutation."""
    if now - window_start >= window:
        return WindowState(request_count=0, window_start=now, expired=True)
    return WindowState(request_count=max(0, request_count), window_start=window_start, expired=False)


class UsageQuotaTracker:
    def __init__(self, db: Session, window: timedelta = DEFAULT_WINDOW, clock: Optional[Clock] = None):
        self.db = db
        self.window = window
        self.clock = clock or utcnow

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def _refresh_window(self, account: Account) -> None:
        """Apply the lazy reset to ``account`` and persist it if it happened."""
        now = self.clock()
        state = evaluate_window(now, as_naive_utc(account.window_start), account.request_count or 0, self.window)
        if not state.expired:
            return
        self.db.flush()
        # Reset only if no other writer has already moved this window on
        updated = self.db.query(Account).filter(
            Account.id == account.id,
            Account.window_start == account.window_start,
        ).update(
            {
                Account.request_count: state.request_count,
                Account.window_start: state.window_start,
            },
            synchronize_session=False,
        )
        self._commit()
        self.db.refresh(account)
        if updated:
            logger.info("Usage window reset for account %s", account.id)

    def check_admission(self, account: Account) -> bool:
        self._refresh_window(account)
        return account.request_count < account.daily_limit

    def increment(self, account: Account) -> None:
        """Count one successful quota-consuming action."""
        self.db.flush()
        # SQL-side increment so concurrent writers never lose an update
        self.db.query(Account).filter(Account.id == account.id).update(
            {Account.request_count: Account.request_count + 1},
            synchronize_session=False,
        )
        self._commit()
        self.db.refresh(account)

    def try_consume(self, account: Account) -> bool:
        """Take one slot only if the account is still under its limit."""
        self._refresh_window(account)
        self.db.flush()
        updated = self.db.query(Account).filter(
            Account.id == account.id,
            Account.request_count < Account.daily_limit,
        ).update(
            {Account.request_count: Account.request_count + 1},
            synchronize_session=False,
        )
        self._commit()
        self.db.refresh(account)
        return updated == 1

    def release(self, account: Account) -> None:
        """Give back a slot taken by try_consume after the downstream action failed."""
        self.db.flush()
        self.db.query(Account).filter(
            Account.id == account.id,
            Account.request_count > 0,
        ).update(
            {Account.request_count: Account.request_count - 1},
            synchronize_session=False,
        )
        self._commit()
        self.db.refresh(account)

    def remaining(self, account: Account) -> int:
        self._refresh_window(account)
        return max(0, account.daily_limit - account.request_count)

    def time_until_reset(self, account: Account) -> timedelta:
        now = self.clock()
        elapsed = now - as_naive_utc(account.window_start)
        return max(timedelta(0), self.window - elapsed)

    def reset(self, account: Account) -> None:
        """Forced reset, independent of elapsed time."""
        account.request_count = 0
        account.window_start = self.clock()
        self._commit()
        logger.info("Usage manually reset for account %s", account.id)

    def usage_summary(self, account: Account) -> Dict[str, Any]:
        remaining = self.remaining(account)
        seconds_left = int(self.time_until_reset(account).total_seconds())
        if seconds_left > 0:
            resets_in = f"{math.ceil(seconds_left / 3600)} hours"
        else:
            resets_in = "Ready to reset"
        return {
            "used": account.request_count,
            "limit": account.daily_limit,
            "remaining": remaining,
            "lastReset": as_naive_utc(account.window_start).isoformat(),
            "resetsIn": resets_in,
            "resetsInSeconds": seconds_left,
        }
