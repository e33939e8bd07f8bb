"""HTTP session handling for the vendor clients."""

from __future__ import annotations

import threading
from typing import Optional

import requests


class ThreadSessions:
    """Hands each thread its own :class:`requests.Session`.

    ``requests.Session`` is not thread-safe, and one client may serve runs on
    several threads. An injected session is returned to every caller as is.
    """

    def __init__(self, session: Optional[requests.Session] = None) -> None:
        self._shared = session
        self._local = threading.local()

    def current(self) -> requests.Session:
        if self._shared is not None:
            return self._shared
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._local.session = requests.Session()
        return session
