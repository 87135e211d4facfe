"""Pytest configuration to make the project root importable.

This ensures that ``import print_server`` works when tests are run from the
repository root or other locations without installing the package.
"""

import asyncio
import os
import sys

import pytest

# Project root = parent directory of this tests/ folder
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


class FakeProcess:
    """Stands in for asyncio.subprocess.Process"""

    def __init__(self, returncode=0, stdout=b"", stderr=b"", delay=0.0):
        self.returncode = None
        self._exit_code = returncode
        self._stdout = stdout
        self._stderr = stderr
        self._delay = delay
        self.terminated = False
        self.killed = False

    async def communicate(self):
        if self._delay:
            await asyncio.sleep(self._delay)
        self.returncode = self._exit_code
        return self._stdout, self._stderr

    def terminate(self):
        self.terminated = True
        self.returncode = -15

    def kill(self):
        self.killed = True
        self.returncode = -9

    async def wait(self):
        return self.returncode


@pytest.fixture
def fake_spawn(monkeypatch):
    """Replace create_subprocess_exec; records argv and the file contents at spawn time.

    Returns a function ``install(process_for)`` where ``process_for(argv)``
    returns the FakeProcess to hand back (or raises to simulate spawn errors).
    """
    calls = []

    def install(process_for):
        async def fake_exec(*cmd, **kwargs):
            document = None
            if os.path.exists(cmd[-1]):
                with open(cmd[-1], "rb") as f:
                    document = f.read()
            calls.append({"argv": list(cmd), "document": document})
            return process_for(list(cmd))

        monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)
        return calls

    return install
