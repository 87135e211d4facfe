import socket
from collections import namedtuple
from unittest.mock import AsyncMock

import pytest

from print_server import ui_channel
from print_server.errors import ServerStartError
from print_server.models import JobResult
from print_server.session import SessionContext, UISession
from print_server.ui_channel import UIChannel, get_network_interfaces


class StubPrinterManager:
    def get_printer_names(self):
        return ["Office"]


class FakeServerManager:
    def __init__(self, start_error=None):
        self.status = "stopped"
        self.start_error = start_error
        self.started_with = None

    async def start(self, hostname, port, https=None):
        if self.start_error:
            raise self.start_error
        self.started_with = (hostname, port, https)
        self.status = "running"
        return self.status

    async def stop(self):
        self.status = "stopped"
        return self.status


def make_channel(job_manager=None, server_manager=None):
    context = SessionContext(StubPrinterManager())
    channel = UIChannel(
        context,
        job_manager or AsyncMock(),
        server_manager or FakeServerManager(),
        network_interfaces=lambda: {"lo": [{"address": "127.0.0.1"}]},
    )
    return channel, context


@pytest.mark.asyncio
async def test_request_registers_the_session_and_answers_once():
    channel, context = make_channel()
    session = UISession()

    event = await channel.request(session, "get-printers")

    assert context.active_session is session
    assert event.name == "printers"
    assert event.payload == ["Office"]
    assert event.request_id
    assert session.events.qsize() == 1
    assert await session.next_event() == event


@pytest.mark.asyncio
async def test_each_request_gets_its_own_request_id():
    channel, _ = make_channel()
    session = UISession()

    first = await channel.request(session, "get-server-state")
    second = await channel.request(session, "get-server-state")

    assert first.request_id != second.request_id


@pytest.mark.asyncio
async def test_print_reports_success():
    job_manager = AsyncMock()
    job_manager.process_job.return_value = JobResult(success=True)
    channel, _ = make_channel(job_manager=job_manager)

    event = await channel.request(UISession(), "print", {
        "url": "https://a", "printer": "Office", "settings": {"copies": 2},
    })

    assert event.name == "print-result"
    assert event.payload == {"success": True}
    job = job_manager.process_job.await_args.args[0]
    assert job.url == "https://a"
    assert job.settings.copies == 2


@pytest.mark.asyncio
async def test_print_reports_failure_with_error():
    job_manager = AsyncMock()
    job_manager.process_job.return_value = JobResult(success=False, error="printer offline")
    channel, _ = make_channel(job_manager=job_manager)

    event = await channel.request(UISession(), "print", {"url": "https://a", "printer": "Office"})

    assert event.payload == {"success": False, "error": "printer offline"}
    assert event.error == "printer offline"


@pytest.mark.asyncio
async def test_invalid_print_request_still_gets_a_result():
    job_manager = AsyncMock()
    channel, _ = make_channel(job_manager=job_manager)

    event = await channel.request(UISession(), "print", {"url": "https://a"})

    assert event.name == "print-result"
    assert event.payload["success"] is False
    assert event.error.startswith("printer: ")
    job_manager.process_job.assert_not_called()


@pytest.mark.asyncio
async def test_start_and_stop_server():
    server_manager = FakeServerManager()
    channel, _ = make_channel(server_manager=server_manager)
    session = UISession()

    started = await channel.request(session, "start-server", {
        "hostname": "0.0.0.0",
        "port": 3179,
        "httpsSettings": {"useHttps": False, "httpsCert": "", "httpsCertKey": ""},
    })
    state = await channel.request(session, "get-server-state")
    stopped = await channel.request(session, "stop-server")

    assert (started.name, started.payload) == ("server-state", "running")
    assert server_manager.started_with[:2] == ("0.0.0.0", 3179)
    assert server_manager.started_with[2].use_https is False
    assert state.payload == "running"
    assert (stopped.name, stopped.payload) == ("server-state", "stopped")


@pytest.mark.asyncio
async def test_failed_start_reports_state_and_error():
    channel, _ = make_channel(server_manager=FakeServerManager(ServerStartError("Cannot listen on 0.0.0.0:80")))
    session = UISession()

    event = await channel.request(session, "start-server", {"hostname": "0.0.0.0", "port": 80})

    assert event.name == "server-state"
    assert event.payload == "stopped"
    assert "Cannot listen" in event.error
    assert session.events.qsize() == 1


@pytest.mark.asyncio
async def test_unknown_request_gets_an_error_event():
    channel, _ = make_channel()

    event = await channel.request(UISession(), "format-disk")

    assert event.name == "error"
    assert "format-disk" in event.error


@pytest.mark.asyncio
async def test_network_interfaces_request():
    channel, _ = make_channel()

    event = await channel.request(UISession(), "get-network-interfaces")

    assert event.name == "network-interfaces"
    assert event.payload == {"lo": [{"address": "127.0.0.1"}]}


def test_network_interfaces_keep_ip_addresses_only(monkeypatch):
    Address = namedtuple("Address", "family address netmask broadcast ptp")
    monkeypatch.setattr(ui_channel.psutil, "net_if_addrs", lambda: {
        "lo": [Address(socket.AF_INET, "127.0.0.1", "255.0.0.0", None, None)],
        "eth0": [
            Address(socket.AF_INET, "192.168.1.20", "255.255.255.0", None, None),
            Address(socket.AF_INET6, "fe80::1%eth0", "ffff:ffff:ffff:ffff::", None, None),
            Address(-1, "00:11:22:33:44:55", None, None, None),
        ],
        "dummy": [Address(-1, "00:00:00:00:00:00", None, None, None)],
    })

    interfaces = get_network_interfaces()

    assert set(interfaces) == {"lo", "eth0"}
    assert interfaces["lo"][0]["internal"] is True
    assert [a["family"] for a in interfaces["eth0"]] == ["IPv4", "IPv6"]
    assert interfaces["eth0"][0] == {
        "address": "192.168.1.20", "netmask": "255.255.255.0", "family": "IPv4", "internal": False,
    }
