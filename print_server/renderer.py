"""
Page Renderer
Turns a URL into PDF bytes: direct download for PDF responses, headless browser print otherwise
"""

import asyncio
import logging
import os
import shutil
from typing import List, Optional

import aiofiles
import aiohttp

from . import __version__
from .errors import RenderError
from .temp_artifacts import TempArtifactManager

USER_AGENT = f"PrintServer / {__version__}"

# HEAD answered with these means "ask again with GET"
HEAD_UNSUPPORTED = {405, 501}

BROWSER_NAMES = [
    "chromium",
    "chromium-browser",
    "google-chrome",
    "google-chrome-stable",
    "microsoft-edge",
    "msedge",
    "chrome",
]

WINDOWS_BROWSER_PATHS = [
    r"C:\Program Files\Google\Chrome\Application\chrome.exe",
    r"C:\Program Files (x86)\Google\Chrome\Application\chrome.exe",
    r"C:\Program Files (x86)\Microsoft\Edge\Application\msedge.exe",
    r"C:\Program Files\Microsoft\Edge\Application\msedge.exe",
]


def find_browser() -> Optional[str]:
    """Locate a Chromium-family browser able to run ``--print-to-pdf``"""
    for name in BROWSER_NAMES:
        path = shutil.which(name)
        if path:
            return path

    for path in WINDOWS_BROWSER_PATHS:
        if os.path.exists(path):
            return path

    return None


class PageRenderer:
    """Rendering collaborator used by the content resolver"""

    def __init__(self, browser_path: Optional[str] = None, timeout: Optional[float] = None,
                 temp_artifacts: Optional[TempArtifactManager] = None):
        self.browser_path = browser_path or None
        self.timeout = timeout
        self.temp_artifacts = temp_artifacts or TempArtifactManager(prefix="render_")
        self.logger = logging.getLogger(__name__)

    async def render(self, url: str, user_agent: str = USER_AGENT) -> bytes:
        """Load ``url`` with ``user_agent`` and return it as PDF bytes"""
        if url.lower().startswith(("http://", "https://")):
            pdf = await self._fetch_pdf(url, user_agent)
            if pdf is not None:
                return pdf

        return await self._print_to_pdf(url, user_agent)

    async def _fetch_pdf(self, url: str, user_agent: str) -> Optional[bytes]:
        """Download ``url`` only if the server reports a PDF; other pages are left to the browser.

        The content type is checked with HEAD so a page that gets converted is
        requested by the browser alone. Servers that refuse HEAD get a GET
        whose body is read only for PDF responses.
        """
        timeout = aiohttp.ClientTimeout(total=self.timeout, connect=10)
        headers = {'User-Agent': user_agent}

        async with aiohttp.ClientSession(timeout=timeout, headers=headers) as session:
            async with session.head(url, allow_redirects=True) as response:
                status, content_type = response.status, self._content_type(response)

            if status not in HEAD_UNSUPPORTED:
                self._check_status(status)
                if 'pdf' not in content_type:
                    self.logger.debug(f"Content type is {content_type or 'unknown'}, converting to PDF")
                    return None

            async with session.get(url) as response:
                self._check_status(response.status)
                content_type = self._content_type(response)
                if 'pdf' not in content_type:
                    self.logger.debug(f"Content type is {content_type or 'unknown'}, converting to PDF")
                    return None

                self.logger.debug(f"Content type is {content_type}, printing directly")
                return await response.read()

    @staticmethod
    def _content_type(response: aiohttp.ClientResponse) -> str:
        return response.headers.get('content-type', '').lower()

    @staticmethod
    def _check_status(status: int):
        if status >= 400:
            raise RenderError(f"Loading failed with status {status}")

    async def _print_to_pdf(self, url: str, user_agent: str) -> bytes:
        browser = self.browser_path or find_browser()
        if not browser:
            raise RenderError("No headless browser found for PDF conversion")

        output_path = self.temp_artifacts.allocate()
        try:
            cmd = self._browser_command(browser, url, user_agent, output_path)
            self.logger.debug(f"Converting to PDF: {url}")

            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )

            try:
                _, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
            except (asyncio.TimeoutError, asyncio.CancelledError):
                process.kill()
                await process.wait()
                raise

            if process.returncode != 0:
                message = stderr.decode(errors='replace').strip() or f"exit status {process.returncode}"
                self.logger.error(f"Convert to PDF error: {message}")
                raise RenderError(message)

            async with aiofiles.open(output_path, 'rb') as f:
                data = await f.read()

            if not data:
                raise RenderError("Browser produced an empty PDF")
            return data

        finally:
            self.temp_artifacts.cleanup(output_path)

    @staticmethod
    def _browser_command(browser: str, url: str, user_agent: str, output_path: str) -> List[str]:
        return [
            browser,
            "--headless",
            "--disable-gpu",
            "--no-pdf-header-footer",
            f"--user-agent={user_agent}",
            f"--print-to-pdf={output_path}",
            url,
        ]
