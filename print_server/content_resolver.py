"""
Content Resolver
Produces raw document bytes for a print job
"""

import asyncio
import base64
import binascii
import logging

from .errors import ResolutionError
from .models import PrintJob
from .renderer import USER_AGENT


class ContentResolver:
    """Decodes inline content or asks the renderer to produce a PDF from the job URL"""

    def __init__(self, renderer, user_agent: str = USER_AGENT):
        self.renderer = renderer
        self.user_agent = user_agent
        self.logger = logging.getLogger(__name__)

    async def resolve(self, job: PrintJob) -> bytes:
        if job.inline_content:
            return self._decode_inline(job)

        self.logger.debug(f"Loading url {job.url}")
        try:
            return await self.renderer.render(job.url, self.user_agent)
        except ResolutionError:
            raise
        except asyncio.TimeoutError:
            raise ResolutionError(job.url, "timed out while rendering") from None
        except Exception as e:
            self.logger.error(f"Error loading URL {job.url}: {e}")
            raise ResolutionError(job.url, str(e) or type(e).__name__) from e

    def _decode_inline(self, job: PrintJob) -> bytes:
        content = job.inline_content
        # Accept data URIs as sent by browsers' FileReader
        if content.startswith("data:") and "," in content:
            content = content.split(",", 1)[1]

        try:
            data = base64.b64decode(content)
        except (binascii.Error, ValueError) as e:
            raise ResolutionError(job.url, f"invalid base64 content: {e}") from e

        if not data:
            raise ResolutionError(job.url, "inline content is empty")

        self.logger.debug(f"Decoded {len(data)} bytes of inline content, printing directly")
        return data
