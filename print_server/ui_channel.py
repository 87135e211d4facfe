"""
UI Channel
In-process request/response channel between the desktop UI and the print core
"""

import ipaddress
import logging
import socket
import uuid
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import psutil
from pydantic import ValidationError

from .errors import ServerLifecycleError
from .models import HttpsSettings, PrintJob, validation_message
from .session import ChannelEvent, SessionContext, UISession

ADDRESS_FAMILIES = {
    socket.AF_INET: "IPv4",
    socket.AF_INET6: "IPv6",
}


def get_network_interfaces() -> Dict[str, List[Dict[str, Any]]]:
    """IPv4/IPv6 addresses per interface, for choosing a bind address"""
    interfaces = {}
    for name, addresses in psutil.net_if_addrs().items():
        entries = []
        for addr in addresses:
            family = ADDRESS_FAMILIES.get(addr.family)
            if family is None:
                continue
            try:
                internal = ipaddress.ip_address(addr.address.split('%')[0]).is_loopback
            except ValueError:
                internal = False
            entries.append({
                "address": addr.address,
                "netmask": addr.netmask,
                "family": family,
                "internal": internal,
            })
        if entries:
            interfaces[name] = entries
    return interfaces


Handler = Callable[[Dict[str, Any]], Awaitable[Tuple[Any, Optional[str]]]]


class UIChannel:
    """Dispatches UI requests; every request produces exactly one correlated response event"""

    # request name -> response event name
    RESPONSES = {
        "get-printers": "printers",
        "print": "print-result",
        "get-network-interfaces": "network-interfaces",
        "start-server": "server-state",
        "stop-server": "server-state",
        "get-server-state": "server-state",
    }

    def __init__(self, session_context: SessionContext, job_manager, server_manager,
                 network_interfaces: Callable[[], Dict[str, Any]] = get_network_interfaces):
        self.session_context = session_context
        self.job_manager = job_manager
        self.server_manager = server_manager
        self.network_interfaces = network_interfaces
        self.logger = logging.getLogger(__name__)

        self.handlers: Dict[str, Handler] = {
            "get-printers": self._get_printers,
            "print": self._print,
            "get-network-interfaces": self._get_network_interfaces,
            "start-server": self._start_server,
            "stop-server": self._stop_server,
            "get-server-state": self._get_server_state,
        }

    async def request(self, session: UISession, name: str,
                      payload: Optional[Dict[str, Any]] = None) -> ChannelEvent:
        """Handle one request from ``session`` and deliver its response event"""
        request_id = uuid.uuid4().hex
        self.session_context.register(session)

        handler = self.handlers.get(name)
        if handler is None:
            event = ChannelEvent(name="error", request_id=request_id, error=f"Unknown request '{name}'")
        else:
            response_name = self.RESPONSES[name]
            try:
                result, error = await handler(payload or {})
            except Exception as e:
                self.logger.exception(f"UI request {name} failed")
                result, error = None, str(e) or type(e).__name__
            event = ChannelEvent(name=response_name, payload=result, request_id=request_id, error=error)

        session.send(event)
        return event

    async def _get_printers(self, payload: Dict[str, Any]):
        return await self.session_context.get_printers(), None

    async def _get_network_interfaces(self, payload: Dict[str, Any]):
        return self.network_interfaces(), None

    async def _print(self, payload: Dict[str, Any]):
        try:
            job = PrintJob.model_validate(payload)
        except ValidationError as e:
            message = validation_message(e)
            return {"success": False, "error": message}, message

        result = await self.job_manager.process_job(job)
        return result.model_dump(exclude_none=True), result.error

    async def _start_server(self, payload: Dict[str, Any]):
        https = payload.get("https_settings") or payload.get("httpsSettings") or {}
        try:
            state = await self.server_manager.start(
                payload.get("hostname"),
                payload.get("port"),
                HttpsSettings.model_validate(https),
            )
        except (ServerLifecycleError, ValidationError, TypeError, ValueError) as e:
            self.logger.error(f"Server start failed: {e}")
            return self.server_manager.status, str(e)
        return state, None

    async def _stop_server(self, payload: Dict[str, Any]):
        return await self.server_manager.stop(), None

    async def _get_server_state(self, payload: Dict[str, Any]):
        return self.server_manager.status, None
