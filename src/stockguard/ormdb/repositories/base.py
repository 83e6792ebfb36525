"""Base repository class with common functionality."""

from typing import Optional

from sqlalchemy.orm import Session

from ..database import get_session_sync


class BaseRepository:
    """
    Base repository class providing common session management.

    A session created by the repository is closed on exit. A session passed
    in stays open unless ``close_on_exit`` is set.
    """

    def __init__(self, session: Optional[Session] = None, close_on_exit: Optional[bool] = None):
        self.session = session or get_session_sync()
        self._close_on_exit = session is None if close_on_exit is None else close_on_exit

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.session.rollback()
        if self._close_on_exit:
            self.session.close()
