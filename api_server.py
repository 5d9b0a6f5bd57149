#!/usr/bin/env python3
"""R2 Dashboard API Server Daemon"""

import os
import signal
import sys

import uvicorn

from config import default_data_dir

# PID file for daemon management
PID_FILE = default_data_dir() / "api.pid"


def write_pid():
    """Write process ID to file"""
    PID_FILE.parent.mkdir(parents=True, exist_ok=True)
    with open(PID_FILE, 'w') as f:
        f.write(str(os.getpid()))


def remove_pid():
    """Remove PID file"""
    if PID_FILE.exists():
        PID_FILE.unlink()


def signal_handler(sig, frame):
    """Handle shutdown signals"""
    print("\nShutting down API server...")
    remove_pid()
    sys.exit(0)


def run(host: str = "0.0.0.0", port: int = 8000) -> None:
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    write_pid()

    print("Starting R2 Dashboard API Server...")
    print(f"PID: {os.getpid()}")
    print(f"Server: http://{host}:{port}")
    print(f"Docs: http://localhost:{port}/docs")
    print(f"PID file: {PID_FILE}")
    print("\nPress Ctrl+C to stop\n")

    try:
        uvicorn.run(
            "api.main:create_app",
            factory=True,
            host=host,
            port=port,
            reload=False,
            log_level="info",
            access_log=True,
        )
    finally:
        remove_pid()


if __name__ == "__main__":
    run()
