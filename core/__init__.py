"""
Core Indexer Components.

Pure data structures and the placetype vocabulary; nothing here touches
the database or the filesystem beyond reading a single feature file.

Structure:
    models/: Feature, record and result models
    placetypes: Placetype vocabulary
"""

from . import models
from . import placetypes

__all__ = ['models', 'placetypes']
