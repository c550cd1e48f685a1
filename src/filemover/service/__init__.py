"""
Worker service wiring.
"""

from filemover.service.worker import FileMoverWorker, run_worker

__all__ = ["FileMoverWorker", "run_worker"]
