"""
Core Data Models Package.

Contains pure data structures without business logic.

Exports:
    WOFFeature: Parsed Who's On First feature
    MetadataSummary, RecordRow: Stored record models
    IndexFailure, BatchResult: Batch outcome models
    GeometryMode, RecordOutcome: Enums
"""

from .enums import GeometryMode, RecordOutcome
from .feature import WOFFeature
from .record import MetadataSummary, RecordRow
from .results import IndexFailure, BatchResult

__all__ = [
    'GeometryMode',
    'RecordOutcome',
    'WOFFeature',
    'MetadataSummary',
    'RecordRow',
    'IndexFailure',
    'BatchResult',
]
