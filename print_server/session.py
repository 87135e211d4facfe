"""
UI sessions
The currently registered UI session and the events delivered to it
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, List, Optional

MAX_PENDING_EVENTS = 100


@dataclass(frozen=True)
class ChannelEvent:
    """An event sent to a UI session; ``request_id`` is None for unsolicited notifications"""

    name: str
    payload: Any = None
    request_id: Optional[str] = None
    error: Optional[str] = None


class UISession:
    """One connected UI; events for it are queued until it reads them.

    The queue is bounded: when the UI does not drain it, the oldest pending
    event is dropped to make room for the newest.
    """

    def __init__(self, session_id: Optional[str] = None, max_events: int = MAX_PENDING_EVENTS):
        self.session_id = session_id or uuid.uuid4().hex
        self.events: "asyncio.Queue[ChannelEvent]" = asyncio.Queue(maxsize=max_events)
        self.dropped_events = 0
        self.logger = logging.getLogger(__name__)

    def send(self, event: ChannelEvent):
        if self.events.full():
            dropped = self.events.get_nowait()
            self.dropped_events += 1
            self.logger.debug(f"Session {self.session_id} queue full, dropped '{dropped.name}' event")
        self.events.put_nowait(event)

    async def next_event(self) -> ChannelEvent:
        return await self.events.get()


class SessionContext:
    """Tracks the active UI session; the HTTP API only lists printers once one has registered"""

    def __init__(self, printer_manager):
        self.printer_manager = printer_manager
        self.active_session: Optional[UISession] = None
        self.logger = logging.getLogger(__name__)

    @property
    def registered(self) -> bool:
        return self.active_session is not None

    def register(self, session: UISession) -> UISession:
        if self.active_session is not session:
            self.logger.info(f"UI session registered: {session.session_id}")
        self.active_session = session
        return session

    def unregister(self, session: UISession):
        if self.active_session is session:
            self.active_session = None
            self.logger.info(f"UI session closed: {session.session_id}")

    async def get_printers(self) -> Optional[List[str]]:
        """Printer names, or None while no UI session is registered"""
        if not self.registered:
            return None
        # Printer discovery runs blocking system commands
        return await asyncio.to_thread(self.printer_manager.get_printer_names)

    def notify(self, name: str, payload: Any = None):
        """Push an unsolicited event to the active session, if any"""
        if self.active_session is not None:
            self.active_session.send(ChannelEvent(name=name, payload=payload))
