"""
Background Worker.

Entry point for the task queue worker.
"""

import signal

from ddtrace import patch_all

from praxis_worker.dependencies import get_worker

patch_all()


def main():
    """Starts the worker and stops it cleanly on SIGINT/SIGTERM."""
    worker = get_worker()

    def _shutdown(signum, frame):
        worker.stop()

    signal.signal(signal.SIGTERM, _shutdown)
    signal.signal(signal.SIGINT, _shutdown)
    worker.start()


if __name__ == "__main__":
    main()
