"""
Processed-file ledgers.
"""

from filemover.ledger.base import ProcessedFileLedger
from filemover.ledger.duckdb import DuckDBLedger
from filemover.ledger.http import HttpLedger
from filemover.ledger.memory import InMemoryLedger

__all__ = ["DuckDBLedger", "HttpLedger", "InMemoryLedger", "ProcessedFileLedger"]
