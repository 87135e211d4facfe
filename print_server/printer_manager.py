"""
Printer Manager
Handles printer detection for the host's print system
"""

import logging
import shutil
import subprocess
import threading
import time
from typing import Any, Dict, List, Optional

from .command_translator import normalize_platform

try:
    import win32print
    WIN32_AVAILABLE = True
except ImportError:
    WIN32_AVAILABLE = False

# Seconds a detected printer list is reused before it is queried again
PRINTER_LIST_MAX_AGE = 2.0


class PrinterManager:
    """Manages printer detection"""

    def __init__(self, target_platform: Optional[str] = None, max_age: float = PRINTER_LIST_MAX_AGE):
        self.logger = logging.getLogger(__name__)
        self.platform = normalize_platform(target_platform)
        self.max_age = max_age
        self.printers: List[Dict[str, Any]] = []
        self.last_refresh = 0
        self.refresh_lock = threading.Lock()

    def refresh_printers(self):
        """Refresh the printer list"""
        with self.refresh_lock:
            self.logger.debug("Refreshing printer list...")
            try:
                if self.platform == "win32":
                    printers = self._enumerate_windows_printers()
                else:
                    printers = self._enumerate_cups_printers()
            except (OSError, subprocess.SubprocessError) as e:
                self.logger.error(f"Printer enumeration failed: {e}")
                printers = []

            self.printers = printers
            self.last_refresh = time.time()
            self.logger.debug(f"Successfully refreshed {len(self.printers)} printers")

    def _enumerate_windows_printers(self) -> List[Dict[str, Any]]:
        if not WIN32_AVAILABLE:
            self.logger.warning("win32print not available, no printers listed")
            return []

        try:
            default_printer = win32print.GetDefaultPrinter()
        except Exception:
            default_printer = ""

        printers = win32print.EnumPrinters(
            win32print.PRINTER_ENUM_LOCAL |
            win32print.PRINTER_ENUM_CONNECTIONS
        )
        self.logger.debug(f"Found {len(printers)} raw printers")

        # Name is at index 2
        return [
            {"name": p[2], "is_default": p[2].lower() == default_printer.lower()}
            for p in printers
        ]

    def _enumerate_cups_printers(self) -> List[Dict[str, Any]]:
        if shutil.which("lpstat") is None:
            self.logger.warning("lpstat not available, no printers listed")
            return []

        default_printer = self._cups_default_printer()
        proc = subprocess.run(
            ["lpstat", "-a"],
            capture_output=True,
            text=True,
            timeout=10,
        )
        if proc.returncode != 0:
            # lpstat exits nonzero when no destinations exist
            self.logger.debug(f"lpstat -a: {proc.stderr.strip()}")
            return []

        printers = []
        for line in proc.stdout.splitlines():
            parts = line.strip().split()
            if parts:
                printers.append({"name": parts[0], "is_default": parts[0] == default_printer})
        return printers

    def _cups_default_printer(self) -> Optional[str]:
        proc = subprocess.run(
            ["lpstat", "-d"],
            capture_output=True,
            text=True,
            timeout=10,
        )
        # sample: "system default destination: HP_LaserJet"
        text = proc.stdout.strip()
        if proc.returncode == 0 and ":" in text:
            return text.split(":", 1)[1].strip() or None
        return None

    def get_printers(self) -> List[Dict[str, Any]]:
        """Get all printers, re-detecting them once the list is older than ``max_age`` seconds"""
        if not self.last_refresh or time.time() - self.last_refresh >= self.max_age:
            self.refresh_printers()
        return [dict(p) for p in self.printers]

    def get_printer_names(self) -> List[str]:
        return [p["name"] for p in self.get_printers()]

    def get_default_printer(self) -> Optional[Dict[str, Any]]:
        for printer in self.get_printers():
            if printer.get("is_default"):
                return printer
        return None
