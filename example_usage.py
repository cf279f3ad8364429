#!/usr/bin/env python3
"""
Example script demonstrating how to push samples to Graphite with the
default pusher.
"""
import logging
import time

import psutil

import graphite_pusher


def push_system_samples():
    """Push a few host metrics, timestamped now."""
    cpu_percent = psutil.cpu_percent(interval=1)
    graphite_pusher.push_sample('graphite_pusher.example.cpu_usage', cpu_percent)
    print(f"Queued CPU usage: {cpu_percent}%")

    memory_percent = psutil.virtual_memory().percent
    graphite_pusher.push_sample('graphite_pusher.example.memory_usage', memory_percent)
    print(f"Queued memory usage: {memory_percent}%")


def main():
    """Main function to run the example."""
    logging.basicConfig(level=logging.INFO)
    print("Starting graphite pusher example...")

    graphite_pusher.configure(host='localhost', port=2004)
    graphite_pusher.start()

    # Timestamp defaults to now
    graphite_pusher.push_sample('graphite_pusher.example.single', 12.345)

    for i in range(100):
        graphite_pusher.push_sample('graphite_pusher.example.series', i / 10)

    # Explicit timestamp
    graphite_pusher.push_sample('graphite_pusher.example.explicit', 100, int(time.time()))

    for _ in range(3):
        push_system_samples()
        time.sleep(5)

    # Block until the queue has been flushed
    graphite_pusher.shutdown(timeout=30)

    queued_count = graphite_pusher.get_queued_count()
    if queued_count > 0:
        print(f"There are {queued_count} samples that were not sent.")

    print("Graphite pusher example completed.")


if __name__ == "__main__":
    main()
