"""
Base collector class for producing samples.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from .sample import now_timestamp

logger = logging.getLogger(__name__)


class Collector(ABC):
    """
    Abstract base class for all sample collectors.

    All collectors should inherit from this class and implement the required methods:
    - collect(): Implement the specific data collection logic
    - format_metrics(): Turn the raw data into metric names and values

    Metric names are joined to the collector prefix with a dot to form the
    Graphite path.
    """

    def __init__(self, prefix: Optional[str] = None):
        self.prefix = prefix

    @abstractmethod
    def collect(self) -> Dict[str, Any]:
        """
        Collect metrics.

        Returns:
            dict: The collected metrics
        """
        pass

    @abstractmethod
    def format_metrics(self, raw_metrics: Dict[str, Any]) -> Dict[str, float]:
        """
        Format the raw metrics as metric names and values.

        Args:
            raw_metrics (dict): Raw metrics from collect()

        Returns:
            dict: Metric name to value
        """
        pass

    @property
    def name(self) -> str:
        """
        Get the name of the collector.

        Returns:
            str: The name of the collector (class name by default)
        """
        return self.__class__.__name__

    def metric_path(self, metric: str) -> str:
        if self.prefix:
            return f"{self.prefix.rstrip('.')}.{metric}"
        return metric

    def safe_collect(self) -> Dict[str, Any]:
        """
        Safely collect metrics, catching any exceptions.

        Returns:
            dict: The collected metrics or an error dict if collection fails
        """
        try:
            return self.collect()
        except Exception as e:
            logger.error("Error collecting metrics from %s: %s", self.name, str(e))
            return {'error': str(e)}

    def collect_and_push(self, pusher, dry_run: bool = False) -> Dict[str, Any]:
        """
        Collect and format metrics, then queue them on the pusher with a
        shared timestamp.

        Args:
            pusher (GraphitePusher): Pusher to queue the samples on
            dry_run (bool): If True, only log what would be queued

        Returns:
            dict: Collected metrics or error information
        """
        metrics = self.safe_collect()

        if 'error' in metrics:
            logger.error("%s collection error: %s", self.name, metrics['error'])
            return metrics

        timestamp = now_timestamp()
        for metric, value in self.format_metrics(metrics).items():
            path = self.metric_path(metric)
            if dry_run:
                logger.info("DRY RUN: Would push %s %s %s", path, value, timestamp)
            else:
                pusher.push_sample(path, value, timestamp)

        return metrics
