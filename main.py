#!/usr/bin/env python3
"""
Print Server - Main Entry Point
Local print server: prints URLs and PDFs sent by web applications to OS printers
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path


def setup_logging(level: str = "INFO", log_directory: str = None):
    """Setup basic logging configuration"""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_directory:
        handlers.append(logging.FileHandler(Path(log_directory) / 'service.log', encoding='utf-8'))

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


async def run_service(service):
    """Run the service until SIGINT/SIGTERM"""
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, service.stop)
        except NotImplementedError:
            # Windows event loops have no add_signal_handler
            signal.signal(signum, lambda *_: loop.call_soon_threadsafe(service.stop))

    await service.run()


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(description='Print Server')
    parser.add_argument('--config', metavar='PATH', help='Configuration file path')
    parser.add_argument('--host', help='Listen address (overrides server.ip)')
    parser.add_argument('--port', type=int, help='Listen port (overrides server.port)')
    parser.add_argument('--no-autostart', action='store_true', help='Do not start the HTTP server on launch')
    parser.add_argument('--list-printers', action='store_true', help='List printers and exit')

    args = parser.parse_args()

    from print_server.config_manager import ConfigManager
    from print_server.printer_manager import PrinterManager
    from print_server.service_manager import PrintServerService

    config_manager = ConfigManager(args.config)
    config = config_manager.get_config()
    setup_logging(config.get('log_level', 'INFO'), config.get('log_directory'))
    logger = logging.getLogger(__name__)

    if args.list_printers:
        for printer in PrinterManager().get_printers():
            default = " (Default)" if printer.get('is_default') else ""
            print(f"{printer['name']}{default}")
        return 0

    # Command line overrides are not persisted
    server = config_manager.config['server']
    if args.host:
        server['ip'] = args.host
    if args.port:
        server['port'] = args.port
    if args.no_autostart:
        server['autostart'] = False

    try:
        service = PrintServerService(config_manager)
        service.initialize_components()
        asyncio.run(run_service(service))
        return 0

    except KeyboardInterrupt:
        print("\nService stopped by user")
        return 0
    except Exception as e:
        logger.exception("Fatal error")
        print(f"Fatal error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
