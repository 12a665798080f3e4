"""
Geocoding stages.

Each stage implements the BaseStage abstract class and provides one
geocoding strategy. The geocoder tries them in order and keeps the first
success.

Stages:
- PostalStage: OneMap lookup of an embedded six-digit postal code
- AddressStage: OneMap free-text search with candidate scoring
- ProjectStage: Project cache, then OneMap search on the project name
"""

from .base_stage import BaseStage, StageResult, StageStatistics
from .stage_1_postal import PostalStage
from .stage_2_address import AddressStage
from .stage_3_project import ProjectStage

__all__ = [
    "BaseStage",
    "StageResult",
    "StageStatistics",
    "PostalStage",
    "AddressStage",
    "ProjectStage",
]
