"""Main entry point for MoveScan.

This module provides the HTTP endpoint serving the ranked basket and CLI
commands to run a one-off scan or verify configuration.
"""

import argparse
import json
import sys
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlsplit

from loguru import logger


class ScanServer(ThreadingHTTPServer):
    """HTTP server holding the scanner shared by all request threads."""

    daemon_threads = True

    def __init__(self, address, scanner, cors_origin: str = "*", provider_url: str = ""):
        super().__init__(address, ScanRequestHandler)
        self.scanner = scanner
        self.cors_origin = cors_origin
        self.provider_url = provider_url


class ScanRequestHandler(BaseHTTPRequestHandler):
    """Serves the ranked scan, health checks and CORS preflight."""

    server_version = "MoveScan/1.0"

    def _send_cors_headers(self):
        self.send_header("Access-Control-Allow-Origin", self.server.cors_origin)
        self.send_header("Access-Control-Allow-Methods", "GET, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")

    def _send_json(self, status: int, body) -> None:
        payload = json.dumps(body).encode()
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(payload)))
        self._send_cors_headers()
        self.end_headers()
        self.wfile.write(payload)

    def do_OPTIONS(self):
        self.send_response(204)
        self._send_cors_headers()
        self.send_header("Content-Length", "0")
        self.end_headers()

    def do_GET(self):
        path = urlsplit(self.path).path

        if path == "/":
            body = b"MoveScan is active"
            self.send_response(200)
            self.send_header("Content-Type", "text/plain")
            self.send_header("Content-Length", str(len(body)))
            self._send_cors_headers()
            self.end_headers()
            self.wfile.write(body)
            return

        if path == "/api/stocks":
            try:
                report = self.server.scanner.scan()
                body = [result.to_dict() for result in report.results]
            except Exception as e:
                logger.exception(f"Error processing stocks: {e}")
                self._send_json(500, {"error": "Internal server error"})
                return
            self._send_json(200, body)
            return

        if path == "/health":
            from monitoring.health_check import check_all

            try:
                results = check_all(self.server.provider_url, self.server.scanner.last_report)
            except Exception as e:
                logger.exception(f"Health check failed: {e}")
                self._send_json(500, {"error": "Internal server error"})
                return
            self._send_json(200, results)
            return

        self._send_json(404, {"error": "Not found"})

    def log_message(self, format, *args):
        logger.debug(f"{self.address_string()} - {format % args}")


def build_scanner(symbols=None):
    """Create a scanner from the environment configuration."""
    from config.settings import get_settings
    from engine.scanner import SymbolScanner

    scanner = SymbolScanner.from_settings(get_settings())
    if symbols:
        scanner.symbols = symbols
    return scanner


def start_server():
    """Serve the scan endpoint until interrupted."""
    from config.settings import get_settings

    config = get_settings()
    scanner = build_scanner()
    provider_url = config.ALPHA_VANTAGE_URL if config.DATA_PROVIDER == "alphavantage" else (
        "https://query1.finance.yahoo.com"
    )
    server = ScanServer((config.HOST, config.PORT), scanner, config.CORS_ORIGIN, provider_url)
    logger.info(f"Server running on port {config.PORT}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down server")
    finally:
        server.server_close()


def run_scan(symbols=None, as_json: bool = False):
    """Run one scan and print the ranked basket."""
    from config.symbols import parse_symbols

    scanner = build_scanner(parse_symbols(symbols) if symbols else None)
    try:
        report = scanner.scan()
    except KeyboardInterrupt:
        logger.warning("Scan interrupted")
        sys.exit(130)
    logger.success(f"Scan completed: {report.success_count}/{report.total_symbols} scored")

    if as_json:
        print(json.dumps([r.to_dict() for r in report.results], indent=2))
        return report

    print("\n--- Scan Report ---")
    print(f"Started: {report.started_at}")
    print(f"Scored: {report.success_count}/{report.total_symbols}")
    print(f"{'SYMBOL':<12}{'PRICE':>10}{'CHG%':>8}{'VOL%':>7}{'PROB':>6}  DIRECTION")
    for r in report.results:
        print(
            f"{r.symbol:<12}{r.price:>10.2f}{r.change:>8.2f}{r.volatility:>7.2f}"
            f"{r.probability:>6}  {r.direction.value}"
        )
    if report.errors:
        print("\nSkipped:")
        for err in report.errors[:5]:
            print(f"- {err}")
    return report


def run_check():
    """Load and print the effective configuration."""
    from config.settings import get_settings

    config = get_settings()
    key = config.ALPHA_VANTAGE_API_KEY
    print(f"Provider: {config.DATA_PROVIDER} ({config.INTRADAY_INTERVAL})")
    print(f"API key: {'set (' + key[:4] + '...)' if key else 'not set'}")
    print(f"Symbols: {len(config.get_symbols())}")
    print(
        f"Rate limit: {config.RATE_LIMIT_REQUESTS} calls / {config.RATE_LIMIT_WINDOW:g}s, "
        f"{config.REQUEST_DELAY:g}s spacing"
    )
    print(f"Listen: {config.HOST}:{config.PORT}")
    logger.success("Configuration verified")


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(description="MoveScan intraday move-probability scanner")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("serve", help="Start the HTTP server")

    scan_parser = subparsers.add_parser("scan", help="Run one scan and print the ranking")
    scan_parser.add_argument("--symbols", help="Comma-separated symbols (default: configured basket)")
    scan_parser.add_argument("--json", action="store_true", help="Print results as JSON")

    subparsers.add_parser("check", help="Verify configuration")

    args = parser.parse_args(argv)

    if args.command in ("serve", "scan"):
        from config.logging import setup_logging

        setup_logging()

    if args.command == "serve":
        start_server()
    elif args.command == "scan":
        run_scan(args.symbols, as_json=args.json)
    elif args.command == "check":
        run_check()
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
