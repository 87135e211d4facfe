"""
Print Executor
Writes resolved documents to temp files and hands them to the OS print mechanism
"""

import asyncio
import logging
import os
import platform
import subprocess
import time
from pathlib import Path
from typing import Any, Dict, Optional

from .command_translator import CommandTranslator, get_translator, normalize_platform
from .errors import ExecutionError
from .models import PrintSettings
from .temp_artifacts import TempArtifactManager

# platform.machine() -> directory name of the bundled SumatraPDF build
ARCH_DIRECTORIES = {
    "amd64": "x64",
    "x86_64": "x64",
    "x86": "ia32",
    "i386": "ia32",
    "i686": "ia32",
    "arm64": "arm64",
    "aarch64": "arm64",
}

SUMATRA_INSTALL_PATHS = [
    r"C:\Program Files\SumatraPDF\SumatraPDF.exe",
    r"C:\Program Files (x86)\SumatraPDF\SumatraPDF.exe",
    os.path.join(os.path.expanduser("~"), "AppData", "Local", "SumatraPDF", "SumatraPDF.exe"),
]

DEFAULT_RESOURCES_PATH = Path(__file__).resolve().parent.parent / "external"


class PrintExecutor:
    """Prints one resolved document to one printer"""

    # Seconds a timed out print command gets to exit after terminate() before kill()
    terminate_grace = 5.0

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 translator: Optional[CommandTranslator] = None,
                 temp_artifacts: Optional[TempArtifactManager] = None,
                 target_platform: Optional[str] = None):
        config = config or {}
        self.logger = logging.getLogger(__name__)

        self.platform = normalize_platform(target_platform)
        self.translator = translator or get_translator(self.platform)
        self.temp_artifacts = temp_artifacts or TempArtifactManager(config.get('temp_directory'))
        self.timeout = config.get('timeout_seconds')
        self.resources_path = Path(config.get('resources_path') or DEFAULT_RESOURCES_PATH)
        self.sumatra_path = config.get('sumatra_path') or None

        # Performance tracking
        self.jobs_processed = 0
        self.successful_jobs = 0
        self.total_processing_time = 0.0

    def resolve_executable(self) -> str:
        """Path or name of the print mechanism binary for this platform"""
        if self.platform == "win32":
            return self._find_sumatra_pdf()
        return "lp"

    def _find_sumatra_pdf(self) -> str:
        if self.sumatra_path:
            return self.sumatra_path

        arch = ARCH_DIRECTORIES.get(platform.machine().lower(), platform.machine().lower())
        bundled = self.resources_path / "win32" / arch / "SumatraPDF.exe"
        for path in [bundled, *SUMATRA_INSTALL_PATHS]:
            if os.path.exists(str(path)):
                return str(path)

        self.logger.warning(f"SumatraPDF not found, expecting it at {bundled}")
        return str(bundled)

    async def execute(self, data: bytes, printer: str, settings: Optional[PrintSettings] = None) -> str:
        """Write ``data`` to a temp PDF, print it and return the command's output"""
        start_time = time.time()
        success = False
        try:
            async with self.temp_artifacts.artifact(data) as pdf_path:
                output = await self.print_file(pdf_path, printer, settings)
            success = True
            return output
        finally:
            processing_time = time.time() - start_time
            self.jobs_processed += 1
            self.total_processing_time += processing_time
            if success:
                self.successful_jobs += 1

    async def print_file(self, pdf_path: str, printer: str, settings: Optional[PrintSettings] = None) -> str:
        executable = self.resolve_executable()
        cmd = self.translator.build_command(executable, printer, pdf_path, settings)

        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(f"Executing: {self.translator.command_line(cmd)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                creationflags=subprocess.CREATE_NO_WINDOW if os.name == 'nt' else 0
            )
        except OSError as e:
            self.logger.error(f"Could not start {executable}: {e}")
            raise ExecutionError(f"Could not start {executable}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.terminate()
            try:
                await asyncio.wait_for(process.wait(), timeout=self.terminate_grace)
            except asyncio.TimeoutError:
                process.kill()
                await process.wait()
            raise ExecutionError(f"Print command timed out after {self.timeout}s") from None

        if process.returncode != 0:
            message = stderr.decode(errors='replace').strip()
            message = message or f"{os.path.basename(executable)} exited with status {process.returncode}"
            self.logger.error(f"Print command failed: {message}")
            raise ExecutionError(message, process.returncode)

        return stdout.decode(errors='replace')

    def get_performance_stats(self) -> Dict[str, Any]:
        average = self.total_processing_time / self.jobs_processed if self.jobs_processed else 0
        return {
            "jobs_processed": self.jobs_processed,
            "successful_jobs": self.successful_jobs,
            "average_processing_time_ms": round(average * 1000, 1),
        }

    def get_tool_info(self) -> Dict[str, Any]:
        return {
            "platform": self.platform,
            "translator": self.translator.name,
            "executable": self.resolve_executable(),
            "timeout_seconds": self.timeout,
        }
