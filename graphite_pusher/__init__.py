"""
Asynchronous sample pusher for Graphite's carbon pickle receiver.
"""
from .collector import Collector
from .encoder import build_message
from .pusher import (
    GraphitePusher,
    configure,
    push_sample,
    start,
    stop,
    shutdown,
    get_queued_count
)
from .sample import Sample, SampleQueue

__version__ = "1.0.0"

__all__ = [
    'Collector',
    'GraphitePusher',
    'Sample',
    'SampleQueue',
    'build_message',
    'configure',
    'push_sample',
    'start',
    'stop',
    'shutdown',
    'get_queued_count',
]
