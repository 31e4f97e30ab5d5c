"""
Services package for class series generation.

This package contains service classes that encapsulate the business logic
behind the class series API endpoints and the advance scheduler.
"""

from .availability_service import AvailabilityService
from .availability_cache import AvailabilityLookupCache
from .vacation_service import VacationService
from .occurrence_date_service import OccurrenceDateService, GenerationWindow
from .conflict_classifier import ConflictClassifier, ExistingBooking, SeriesResources
from .class_series_service import ClassSeriesService

__all__ = [
    "AvailabilityService",
    "AvailabilityLookupCache",
    "VacationService",
    "OccurrenceDateService",
    "GenerationWindow",
    "ConflictClassifier",
    "ExistingBooking",
    "SeriesResources",
    "ClassSeriesService",
]
