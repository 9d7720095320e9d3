from dcamonitor.monitor.position_monitor import PositionMonitor
from dcamonitor.monitor.state import StateStore
from dcamonitor.telegram import TelegramNotifier
from dcamonitor.utils.token_metadata import TokenMetadataResolver

__version__ = "1.0.0"
__all__ = [
    "PositionMonitor",
    "StateStore",
    "TelegramNotifier",
    "TokenMetadataResolver",
    "__version__",
]
