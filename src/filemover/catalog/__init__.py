"""
Tenant and transfer configuration stores.
"""

from filemover.catalog.base import ConfigStore
from filemover.catalog.http import HttpConfigStore
from filemover.catalog.static import StaticConfigStore

__all__ = ["ConfigStore", "HttpConfigStore", "StaticConfigStore"]
