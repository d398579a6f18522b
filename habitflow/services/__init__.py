"""Services layer - State, synchronization and analytics"""

from .state import AppState, AppStore, LoadStatus
from .sync_service import SyncService
from .analytics_service import AnalyticsService
from .backup_service import BackupService

__all__ = ["AppState", "AppStore", "LoadStatus", "SyncService", "AnalyticsService", "BackupService"]
