import logging
from typing import Dict

import psutil

logger = logging.getLogger(__name__)


def get_cpu_percent(interval: float = 1.0) -> float:
    """Get system-wide CPU utilisation
    Args:
        interval (float): Seconds to sample over
    Returns:
        float: CPU usage percentage
    """
    return psutil.cpu_percent(interval=interval)


def get_memory_percent() -> float:
    """Get the share of physical memory in use
    Returns:
        float: Memory usage percentage
    """
    return psutil.virtual_memory().percent


def get_disk_percent(path: str = '/') -> float:
    """Get usage of the filesystem holding path
    Args:
        path (str): Any path on the filesystem to check
    Returns:
        float: Disk usage percentage
    """
    return psutil.disk_usage(path).percent


def get_load_average() -> Dict[str, float]:
    """Get the 1, 5 and 15 minute load averages
    Returns:
        dict: Load averages keyed by window
    """
    load_1, load_5, load_15 = psutil.getloadavg()
    return {'load_1': load_1, 'load_5': load_5, 'load_15': load_15}
