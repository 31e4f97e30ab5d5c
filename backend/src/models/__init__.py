# Package initialization
# Import all models to ensure relationships are properly established
from .class_series import ClassSeries, ConflictPolicy, AllowOutsideAvailability, DEFAULT_MARK_AS_CONFLICTED
from .class_session import ClassSession
from .user_availability import UserAvailability
from .vacation import Vacation

__all__ = [
    "ClassSeries",
    "ConflictPolicy",
    "AllowOutsideAvailability",
    "DEFAULT_MARK_AS_CONFLICTED",
    "ClassSession",
    "UserAvailability",
    "Vacation",
]
