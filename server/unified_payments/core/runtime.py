"""
Process and host statistics for the health endpoints.
"""

import os
import platform
import time
from typing import Any, Dict

import psutil


def process_uptime() -> float:
    """Seconds since this process started."""
    process = psutil.Process(os.getpid())
    return round(time.time() - process.create_time(), 3)


def process_memory() -> Dict[str, int]:
    memory = psutil.Process(os.getpid()).memory_info()
    return {"rss": memory.rss, "vms": memory.vms}


def system_info() -> Dict[str, Any]:
    return {
        "uptime": process_uptime(),
        "memory": process_memory(),
        "platform": platform.system().lower(),
        "pythonVersion": platform.python_version(),
        "pid": os.getpid(),
    }


def performance_metrics() -> Dict[str, Any]:
    process = psutil.Process(os.getpid())
    process_memory_info = process.memory_info()
    cpu_times = process.cpu_times()
    memory = psutil.virtual_memory()
    used_memory = memory.total - memory.available

    try:
        load = list(os.getloadavg())
    except (AttributeError, OSError):
        load = []

    return {
        "memory": {
            "used": {
                "bytes": process_memory_info.rss,
                "percentage": f"{process_memory_info.rss / memory.total * 100:.2f}",
            },
            "total": {
                "bytes": memory.total,
                "mb": f"{memory.total / 1024 / 1024:.2f}",
            },
            "free": {
                "bytes": memory.available,
                "mb": f"{memory.available / 1024 / 1024:.2f}",
            },
            "system": {
                "used": {
                    "bytes": used_memory,
                    "percentage": f"{memory.percent:.2f}",
                },
            },
        },
        "cpu": {
            "user": cpu_times.user,
            "system": cpu_times.system,
        },
        "uptime": {
            "process": process_uptime(),
            "system": round(time.time() - psutil.boot_time(), 3),
        },
        "load": load,
        "platform": {
            "type": platform.system(),
            "release": platform.release(),
            "arch": platform.machine(),
            "cpus": psutil.cpu_count() or 0,
        },
    }
