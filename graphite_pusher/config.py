"""
Configuration settings for the Graphite pusher.
"""
import os

# Collector configuration
HOST = os.getenv('GRAPHITE_HOST', 'localhost')
PORT = int(os.getenv('GRAPHITE_PORT', '2004'))  # carbon pickle receiver

# Flush configuration
FREQUENCY = float(os.getenv('GRAPHITE_FREQUENCY', '60'))  # flushes per minute
SHUTDOWN_POLL_INTERVAL = 0.1  # seconds
JOIN_TIMEOUT = 5  # seconds

# Socket configuration
CONNECT_TIMEOUT = float(os.getenv('GRAPHITE_CONNECT_TIMEOUT', '10'))  # seconds
SEND_TIMEOUT = float(os.getenv('GRAPHITE_SEND_TIMEOUT', '10'))  # seconds
RESOLVE_RETRIES = 3
RESOLVE_RETRY_DELAY = 0.5  # seconds

# Queue configuration
_max_queue_size = os.getenv('GRAPHITE_MAX_QUEUE_SIZE')
MAX_QUEUE_SIZE = int(_max_queue_size) if _max_queue_size else None  # None means unbounded
OVERFLOW_POLICY = os.getenv('GRAPHITE_OVERFLOW_POLICY', 'drop_oldest')  # or 'reject'

# Logging configuration
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
