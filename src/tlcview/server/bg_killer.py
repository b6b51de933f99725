import json
from datetime import datetime
from pathlib import Path

import psutil
from loguru import logger

from tlcview.util import TLCVIEW_DIR


def get_servers_dir() -> Path:
    """Get the directory for storing engine PID files."""
    servers_dir = Path(TLCVIEW_DIR) / "running_servers"
    servers_dir.mkdir(parents=True, exist_ok=True)
    return servers_dir


def register_server(host: str, msg_port: int, pid: int) -> Path:
    """Register a running engine in the PID directory."""
    timestamp = datetime.now().strftime("%Y-%m-%d_%H:%M:%S")
    server_info = {
        "pid": pid,
        "timestamp": timestamp,
        "host": host,
        "ports": {"msg": msg_port},
    }
    pid_file = get_servers_dir() / f"server_{pid}.json"
    with pid_file.open("w") as f:
        json.dump(server_info, f, indent=2)
    return pid_file


def list_running_servers() -> list[dict]:
    """Get info about all registered engines, marking which are still alive."""
    servers = []
    for pid_file in get_servers_dir().glob("server_*.json"):
        try:
            with pid_file.open() as f:
                server_info = json.load(f)
        except (OSError, ValueError) as e:
            logger.debug("Skipping unreadable PID file {}: {}", pid_file, e)
            continue
        server_info["running"] = psutil.pid_exists(server_info.get("pid", -1))
        servers.append(server_info)
    return servers


def kill_tlcview_servers() -> int:
    """Find and kill all registered engine processes."""
    killed = 0
    for pid_file in get_servers_dir().glob("server_*.json"):
        try:
            with pid_file.open() as f:
                server_info = json.load(f)

            pid = server_info["pid"]
            try:
                proc = psutil.Process(pid)
                logger.info(
                    "Killing engine PID {} started at {}", pid, server_info["timestamp"]
                )
                proc.kill()
                killed += 1
            except psutil.NoSuchProcess:
                logger.debug("Engine PID {} no longer exists", pid)

            pid_file.unlink()
        except (OSError, ValueError, KeyError, psutil.Error) as e:
            logger.error("Error processing {}: {}", pid_file, e)
            continue

    return killed


def cleanup_stale_servers() -> int:
    """Remove PID files for engines that no longer exist."""
    removed = 0
    for server_info in list_running_servers():
        if server_info["running"]:
            continue
        pid_file = get_servers_dir() / f"server_{server_info['pid']}.json"
        pid_file.unlink(missing_ok=True)
        removed += 1
    return removed


if __name__ == "__main__":
    killed = kill_tlcview_servers()
    logger.info("Killed {} tlcview engine processes", killed)
