"""
Service Manager
Main orchestrator that wires all print server components together
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

from . import __version__
from .api_server import create_api_app
from .config_manager import ConfigManager
from .content_resolver import ContentResolver
from .errors import ServerLifecycleError
from .job_manager import JobManager
from .models import HttpsSettings
from .print_executor import PrintExecutor
from .printer_manager import PrinterManager
from .renderer import PageRenderer
from .server_manager import ServerLifecycleManager
from .session import SessionContext
from .temp_artifacts import TempArtifactManager
from .ui_channel import UIChannel


class PrintServerService:
    """Main service orchestrator that manages all components"""

    def __init__(self, config_manager: ConfigManager):
        self.config_manager = config_manager
        self.logger = logging.getLogger(__name__)

        # Service state
        self.running = False
        self.start_time = None
        self._stop_event: Optional[asyncio.Event] = None

        # Components
        self.printer_manager = None
        self.print_executor = None
        self.job_manager = None
        self.session_context = None
        self.server_manager = None
        self.ui_channel = None

    def initialize_components(self):
        """Initialize all service components"""
        self.logger.info("Initializing service components...")

        render_config = self.config_manager.get_render_config()
        printing_config = self.config_manager.get_printing_config()
        server_config = self.config_manager.get_server_config()

        self.printer_manager = PrinterManager()

        temp_artifacts = TempArtifactManager(printing_config.get('temp_directory'))
        renderer = PageRenderer(
            browser_path=render_config.get('browser_path'),
            timeout=render_config.get('timeout_seconds'),
            temp_artifacts=TempArtifactManager(printing_config.get('temp_directory'), prefix="render_"),
        )
        self.print_executor = PrintExecutor(printing_config, temp_artifacts=temp_artifacts)
        self.job_manager = JobManager(ContentResolver(renderer), self.print_executor)
        self.logger.info("✓ Print pipeline initialized")

        self.session_context = SessionContext(self.printer_manager)
        app = create_api_app(
            self.job_manager,
            self.session_context,
            enable_cors=server_config.get('enable_cors', True),
        )
        self.server_manager = ServerLifecycleManager(app)
        self.server_manager.add_state_listener(
            lambda state: self.session_context.notify("server-state", state)
        )
        self.ui_channel = UIChannel(self.session_context, self.job_manager, self.server_manager)
        self.logger.info("✓ All components initialized successfully")

    async def autostart_server(self) -> bool:
        """Start the listener from ``server.*`` config when autostart is enabled"""
        config = self.config_manager.get_server_config()
        address, port = config.get('ip'), config.get('port')

        if not config.get('autostart') or not (address and port):
            self.logger.info("Server autostart disabled")
            return False

        try:
            await self.server_manager.start(address, port, HttpsSettings.model_validate(config.get('https') or {}))
        except ServerLifecycleError as e:
            self.logger.error(f"❌ Server autostart failed: {e}")
            return False
        return True

    async def run(self):
        """Main service entry point; returns after stop() is called"""
        self.running = True
        self.start_time = time.time()
        self._stop_event = asyncio.Event()

        self.logger.info("=" * 60)
        self.logger.info(f"🖨️  Print Server {__version__}")
        self.logger.info("=" * 60)

        try:
            if self.server_manager is None:
                self.initialize_components()
            await self.autostart_server()
            await self._display_startup_info()

            await self._stop_event.wait()
        finally:
            await self.shutdown()

    def stop(self):
        """Request shutdown; safe to call from a signal handler on the loop thread"""
        if self._stop_event is not None:
            self._stop_event.set()

    async def shutdown(self):
        """Stop all service components"""
        if not self.running:
            return

        self.running = False
        self.logger.info("Stopping Print Server...")

        if self.server_manager:
            await self.server_manager.stop()

        status = self.get_service_status()
        self.logger.info(f"Service uptime: {status['uptime_seconds']:.1f} seconds")
        if status['jobs']:
            self.logger.info(
                f"Jobs printed: {status['jobs']['jobs_succeeded']}, failed: {status['jobs']['jobs_failed']}"
            )

        self.logger.info("✓ Print Server stopped successfully")

    async def _display_startup_info(self):
        """Display service startup information"""
        server_status = self.server_manager.get_status()
        self.logger.info(f"Server: {server_status['state']} ({server_status['address']})")

        tool_info = self.print_executor.get_tool_info()
        self.logger.info(f"Print Tool: {tool_info['translator']} ({tool_info['executable']})")

        default = await asyncio.to_thread(self.printer_manager.get_default_printer)
        if default:
            self.logger.info(f"Default printer: {default['name']}")

        self.logger.info("-" * 40)
        self.logger.info("🚀 Service ready for print jobs!")
        self.logger.info("=" * 60)

    def get_service_status(self) -> Dict[str, Any]:
        """Get comprehensive service status"""
        return {
            "running": self.running,
            "start_time": self.start_time,
            "uptime_seconds": time.time() - self.start_time if self.start_time else 0,
            "server": self.server_manager.get_status() if self.server_manager else None,
            "jobs": self.job_manager.get_status() if self.job_manager else None,
            "executor": self.print_executor.get_performance_stats() if self.print_executor else None,
        }
