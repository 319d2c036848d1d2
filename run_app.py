#!/usr/bin/env python3
"""
Digistore1 Storefront Runner
============================

Run the storefront edge service in different modes.

Usage:
    python run_app.py                    # Development mode with auto-reload (default)
    python run_app.py --mode prod        # Production mode, multiple workers
    python run_app.py --port 8001        # Custom port
    python run_app.py --no-precache      # Skip precaching the app shell on startup
    python run_app.py --origin http://localhost:3000
"""

import argparse
import os
import sys


def print_banner():
    """Print application banner"""
    banner = """
╔═══════════════════════════════════════════════════════╗
║                🛒 Digistore1 Storefront                ║
║            Cart engine and offline cache              ║
╚═══════════════════════════════════════════════════════╝
    """
    print(banner)


def check_dependencies():
    """Check if required dependencies are installed"""
    try:
        import fastapi  # noqa: F401
        import uvicorn  # noqa: F401
        print("✅ FastAPI and Uvicorn are installed")
        return True
    except ImportError as e:
        print(f"❌ Missing dependencies: {e}")
        print("💡 Install them with: pip install -e .")
        return False


def run_app(host, port, reload, workers):
    """Run the FastAPI application"""
    print(f"\n🚀 Starting storefront on {host}:{port}")
    print(f"🔗 Origin: {os.environ.get('ORIGIN_URL', 'default from settings')}")
    print(f"📖 API Docs: http://localhost:{port}/api/docs")
    print("\n" + "=" * 50)

    import uvicorn
    try:
        uvicorn.run(
            "digistore.main:app",
            host=host,
            port=port,
            reload=reload,
            workers=1 if reload else workers,
            log_level="info"
        )
    except KeyboardInterrupt:
        print("\n👋 Server stopped by user")


def main():
    parser = argparse.ArgumentParser(
        description="Digistore1 Storefront Runner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--mode",
        choices=["dev", "prod"],
        default="dev",
        help="Server mode (default: dev)"
    )
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to (default: 8000)")
    parser.add_argument("--workers", type=int, default=4, help="Workers in prod mode (default: 4)")
    parser.add_argument("--origin", help="Storefront origin to cache in front of")
    parser.add_argument(
        "--no-precache",
        action="store_true",
        help="Do not precache the app shell on startup"
    )

    args = parser.parse_args()

    print_banner()

    if not check_dependencies():
        return 1

    # Settings are read from the environment when the app is imported
    if args.origin:
        os.environ["ORIGIN_URL"] = args.origin
    if args.no_precache:
        os.environ["PRECACHE_ON_STARTUP"] = "false"
    if args.mode == "prod":
        os.environ.setdefault("ENVIRONMENT", "production")
        os.environ.setdefault("DEBUG", "false")

    run_app(args.host, args.port, reload=args.mode == "dev", workers=args.workers)
    return 0


if __name__ == "__main__":
    sys.exit(main())
