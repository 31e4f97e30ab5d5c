"""Application constants and configuration values."""

# Database field lengths
MAX_STRING_LENGTH = 255
MAX_NOTES_LENGTH = 1000

# Database connection settings
DB_POOL_RECYCLE_SECONDS = 300  # 5 minutes

# Minute-of-day bounds
MINUTES_PER_DAY = 24 * 60

# A full-day availability/absence record becomes the slot [0, 1439].
# One minute short of MINUTES_PER_DAY; existing callers rely on this end value.
FULL_DAY_SLOT_END_MINUTE = MINUTES_PER_DAY - 1

# Series extension horizon (months)
MIN_EXTEND_MONTHS = 1
MAX_EXTEND_MONTHS = 12
MAX_PREVIEW_MONTHS = 6

# Rolling advance generation
MIN_ADVANCE_LEAD_DAYS = 1
SERIES_ADVANCE_MISFIRE_GRACE_SECONDS = 3600  # Allow 1 hour grace time if server was down
