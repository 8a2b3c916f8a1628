"""
服务层
"""

from .linear_storage import CustomFieldIds, StorageConfig, LinearStorageService

__all__ = [
    "CustomFieldIds",
    "StorageConfig",
    "LinearStorageService"
]
