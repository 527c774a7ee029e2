#!/usr/bin/env python3
"""
Refactor Gateway Daemon Manager

Keeps at most one gateway daemon per port alive. Each port gets its own PID
and log file under RUN_DIR, so several projects can be served side by side
on different ports.

Usage:
    python -m refactor_gateway.manager start  [--port 3001] [--root DIR]
    python -m refactor_gateway.manager stop   [--port 3001]
    python -m refactor_gateway.manager status [--port 3001] [--json]
    python -m refactor_gateway.manager restart
    python -m refactor_gateway.manager ensure   # used by the MCP bridge on startup
"""

import argparse
import json
import os
import signal
import subprocess
import sys
import time
from pathlib import Path

import requests

from .config import DEFAULT_PORT, ENV_PREFIX

RUN_DIR = Path("/tmp/refactor_gateway")
STARTUP_TIMEOUT = 15  # seconds
STOP_TIMEOUT = 5  # seconds
POLL_INTERVAL = 0.5


def pid_file(port: int) -> Path:
    return RUN_DIR / f"daemon-{port}.pid"


def log_file(port: int) -> Path:
    return RUN_DIR / f"daemon-{port}.log"


def daemon_url(port: int, path: str = "/health") -> str:
    return f"http://localhost:{port}{path}"


def read_pid(port: int) -> int | None:
    """PID recorded for `port`, or None. A PID file naming a dead process is removed."""
    path = pid_file(port)
    try:
        pid = int(path.read_text().strip())
        os.kill(pid, 0)
    except FileNotFoundError:
        return None
    except (ValueError, ProcessLookupError):
        path.unlink(missing_ok=True)
        return None
    except PermissionError:
        # Alive, but owned by someone else
        return None
    return pid


def is_healthy(port: int) -> bool:
    try:
        return requests.get(daemon_url(port), timeout=2).status_code == 200
    except requests.RequestException:
        return False


def fetch_stats(port: int) -> dict | None:
    try:
        resp = requests.get(daemon_url(port, "/stats"), timeout=2)
    except requests.RequestException:
        return None
    return resp.json() if resp.status_code == 200 else None


def _wait_healthy(port: int, timeout: float) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if is_healthy(port):
            return True
        time.sleep(POLL_INTERVAL)
    return False


def _daemon_command(port: int, root: str | None) -> list[str]:
    command = [sys.executable, "-m", "refactor_gateway.daemon", "--port", str(port)]
    if root:
        command += ["--root", str(Path(root).resolve())]
    return command


def start(port: int, root: str | None = None) -> bool:
    if is_healthy(port):
        pid = read_pid(port)
        owner = f"PID {pid}" if pid else "not started by this manager"
        print(f"Gateway already answering on port {port} ({owner})")
        return True

    stale = read_pid(port)
    if stale:
        print(f"PID {stale} holds port {port} but is not healthy, killing it")
        try:
            os.kill(stale, signal.SIGKILL)
        except ProcessLookupError:
            pass
        pid_file(port).unlink(missing_ok=True)

    RUN_DIR.mkdir(mode=0o770, parents=True, exist_ok=True)
    with open(log_file(port), "a") as log:
        process = subprocess.Popen(
            _daemon_command(port, root),
            stdout=log,
            stderr=subprocess.STDOUT,
            start_new_session=True,
        )
    pid_file(port).write_text(str(process.pid))

    print(f"Started gateway (PID {process.pid}) on port {port}, waiting for /health...")
    if _wait_healthy(port, STARTUP_TIMEOUT):
        print("Gateway is ready")
        return True
    print(f"ERROR: gateway did not become healthy within {STARTUP_TIMEOUT}s, see {log_file(port)}")
    return False


def stop(port: int) -> bool:
    pid = read_pid(port)
    if pid is None:
        print(f"No gateway recorded for port {port}")
        return True

    try:
        os.kill(pid, signal.SIGTERM)
        deadline = time.monotonic() + STOP_TIMEOUT
        while time.monotonic() < deadline:
            os.kill(pid, 0)
            time.sleep(POLL_INTERVAL)
        print(f"PID {pid} ignored SIGTERM, sending SIGKILL")
        os.kill(pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    except PermissionError:
        print(f"ERROR: not allowed to signal PID {pid}")
        return False

    pid_file(port).unlink(missing_ok=True)
    print(f"Stopped gateway on port {port}")
    return True


def ensure(port: int, root: str | None = None) -> bool:
    """Idempotent start; cheap when the daemon is already up."""
    return is_healthy(port) or start(port, root)


def status(port: int) -> dict:
    healthy = is_healthy(port)
    result = {
        "port": port,
        "pid": read_pid(port),
        "healthy": healthy,
        "pid_file": str(pid_file(port)),
        "log_file": str(log_file(port)),
    }
    if healthy:
        stats = fetch_stats(port)
        if stats is not None:
            result["stats"] = stats
    return result


def print_status(report: dict):
    if report["healthy"]:
        print(f"✓ Gateway healthy on port {report['port']} (PID {report['pid']})")
        stats = report.get("stats", {})
        for label, key in (("Project root", "project_root"),
                           ("Cache generation", "cache_generation"),
                           ("Tracked files", "tracked_files_count"),
                           ("Requests", "request_count")):
            if key in stats:
                print(f"  {label}: {stats[key]}")
    elif report["pid"]:
        print(f"⚠ PID {report['pid']} is alive but port {report['port']} is not answering")
        print(f"  Log: {report['log_file']}")
    else:
        print(f"✗ No gateway on port {report['port']}")


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="Start, stop and inspect the Refactor Gateway daemon")
    parser.add_argument("command", choices=["start", "stop", "restart", "status", "ensure"])
    parser.add_argument(
        "--port", "-p", type=int,
        default=int(os.environ.get(ENV_PREFIX + "PORT", DEFAULT_PORT)),
        help=f"Daemon port (default: ${ENV_PREFIX}PORT or {DEFAULT_PORT})",
    )
    parser.add_argument("--root", default=None, help="Project root handed to a newly started daemon")
    parser.add_argument("--json", action="store_true", help="status: print JSON")
    args = parser.parse_args(argv)

    if args.command == "status":
        report = status(args.port)
        if args.json:
            print(json.dumps(report, indent=2))
        else:
            print_status(report)
        ok = report["healthy"]
    elif args.command == "stop":
        ok = stop(args.port)
    elif args.command == "restart":
        ok = stop(args.port) and start(args.port, args.root)
    elif args.command == "start":
        ok = start(args.port, args.root)
    else:
        ok = ensure(args.port, args.root)
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
