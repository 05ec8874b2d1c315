from .core import (
    DatabaseSettings,
    MarketSettings,
    RetrySettings,
    LoggingSettings,
    Settings,
    load_settings,
    sanitize_dict,
    _project_root,
    _data_dir,
)

__all__ = [
    "DatabaseSettings",
    "MarketSettings",
    "RetrySettings",
    "LoggingSettings",
    "Settings",
    "load_settings",
    "sanitize_dict",
    "_project_root",
    "_data_dir",
]
