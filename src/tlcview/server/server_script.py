# -*- coding: utf-8 -*-
"""
Entry point of the background engine process started by `start_bg_server`.

Arguments (positional): host, msg_port, log_path, clear_prev_log, log_to_file,
log_to_stdout, log_level.
"""

import asyncio
import os
import sys

from tlcview.server.server import start_server

if __name__ == "__main__":
    sys.path.append(os.getcwd())

    host: str = sys.argv[1]
    msg_port: int = int(sys.argv[2])
    log_path: str = sys.argv[3]
    clear_prev_log: bool = sys.argv[4] == "True"
    log_to_file: bool = sys.argv[5] == "True"
    log_to_stdout: bool = sys.argv[6] == "True"
    log_level: str = str(sys.argv[7])

    asyncio.run(
        start_server(
            host,
            msg_port,
            log_path=log_path,
            log_to_stdout=log_to_stdout,
            clear_prev_log=clear_prev_log,
            log_to_file=log_to_file,
            log_level=log_level,
        )
    )
