"""
Temp Artifact Manager
Uniquely named temporary PDFs, one per in-flight print job
"""

import logging
import os
import tempfile
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import aiofiles

from .errors import ArtifactError


class TempArtifactManager:
    """Allocates, writes and removes temporary PDF files"""

    def __init__(self, temp_directory: Optional[str] = None, prefix: str = "print_", suffix: str = ".pdf"):
        self.temp_directory = temp_directory or None
        self.prefix = prefix
        self.suffix = suffix
        self.logger = logging.getLogger(__name__)

    def allocate(self) -> str:
        """Create an empty, uniquely named file and return its path"""
        try:
            temp_file = tempfile.NamedTemporaryFile(
                prefix=self.prefix,
                suffix=self.suffix,
                dir=self.temp_directory,
                delete=False,
            )
            temp_file.close()
        except OSError as e:
            raise ArtifactError(f"Could not create temp file: {e}") from e
        return temp_file.name

    async def write(self, data: bytes) -> str:
        """Allocate a file and write ``data`` to it completely"""
        path = self.allocate()
        try:
            async with aiofiles.open(path, 'wb') as f:
                await f.write(data)
        except OSError as e:
            self.logger.error(f"PDF write error: {e}")
            self.cleanup(path)
            raise ArtifactError(f"Could not write {path}: {e}") from e

        self.logger.debug(f"Wrote {len(data)} bytes to {path}")
        return path

    def cleanup(self, file_path: Optional[str]):
        """Remove a temp file; a file that is already gone is fine"""
        try:
            if file_path and os.path.exists(file_path):
                os.unlink(file_path)
        except OSError as e:
            self.logger.warning(f"Failed to cleanup {file_path}: {e}")

    @asynccontextmanager
    async def artifact(self, data: bytes) -> AsyncIterator[str]:
        """Write ``data`` to a fresh temp file that is removed on exit"""
        path = await self.write(data)
        try:
            yield path
        finally:
            self.cleanup(path)
