"""
Spatial lookup: subzone stores and the coordinate-to-subzone locator.
"""

from .base import SpatialStore
from .locator import SubzoneLocator
from .supabase_store import SupabaseSpatialStore

__all__ = [
    "SpatialStore",
    "SubzoneLocator",
    "SupabaseSpatialStore",
]
