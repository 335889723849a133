"""News Monitor package initializer."""

from .config import MonitorConfig
from .pipeline import NewsMonitor
from .service import MonitorService

__all__ = ["NewsMonitor", "MonitorConfig", "MonitorService"]
