"""
Detection: fingerprints, dedup, scanning and scheduling.
"""

from filemover.detection.cron_parser import CronParseError, Schedule, parse_schedule
from filemover.detection.dedup import DedupEngine
from filemover.detection.fingerprint import fingerprint, fingerprint_entry
from filemover.detection.scanner import ScanResult, ScanStatus, Scanner
from filemover.detection.scheduler import DetectionScheduler, ScheduleEntry, ScheduleState

__all__ = [
    "CronParseError",
    "DedupEngine",
    "DetectionScheduler",
    "Schedule",
    "ScheduleEntry",
    "ScheduleState",
    "ScanResult",
    "ScanStatus",
    "Scanner",
    "fingerprint",
    "fingerprint_entry",
    "parse_schedule",
]
