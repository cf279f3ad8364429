import logging
import socket
from typing import Dict, Any, Optional
from graphite_pusher.collector import Collector
from collectors.system_collector import system_data

logger = logging.getLogger(__name__)

class SystemCollector(Collector):
    """Collector for host CPU, memory, disk and load metrics."""

    def __init__(self, prefix: Optional[str] = None, disk_path: str = '/', cpu_interval: float = 1.0):
        super().__init__(prefix or f"servers.{socket.gethostname().split('.')[0]}")
        self.disk_path = disk_path
        self.cpu_interval = cpu_interval

    def collect(self) -> Dict[str, Any]:
        """Collect system metrics.

        Returns:
            dict: CPU, memory and disk usage percentages plus load averages
        """
        try:
            metrics = {
                'cpu_percent': system_data.get_cpu_percent(self.cpu_interval),
                'memory_percent': system_data.get_memory_percent(),
                'disk_percent': system_data.get_disk_percent(self.disk_path),
            }
        except Exception as e:
            logger.error("Error collecting system metrics: %s", str(e))
            raise RuntimeError(f"Error collecting system metrics: {str(e)}")

        # Not available on every platform
        try:
            metrics.update(system_data.get_load_average())
        except (AttributeError, OSError) as e:
            logger.debug("Load average not available: %s", str(e))

        return metrics

    def format_metrics(self, raw_metrics: Dict[str, Any]) -> Dict[str, float]:
        """
        Format the raw system metrics as Graphite metric names.

        Args:
            raw_metrics (dict): Raw system metrics from collect()

        Returns:
            dict: Metric name to value
        """
        formatted = {
            'cpu.percent': raw_metrics['cpu_percent'],
            'memory.percent': raw_metrics['memory_percent'],
            'disk.percent': raw_metrics['disk_percent'],
        }
        for window in ('load_1', 'load_5', 'load_15'):
            if window in raw_metrics:
                formatted[f"load.{window[len('load_'):]}min"] = raw_metrics[window]
        return formatted
