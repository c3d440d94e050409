"""Engine-wide constants."""

from __future__ import annotations

BRAND_NAME = "LinguaSlots"
API_TITLE = f"{BRAND_NAME} Availability API"
API_DESCRIPTION = "Tutor availability, slot computation and lesson reschedule negotiation"

# Time grid: 30-minute resolution, 48 slots per day
SLOT_MINUTES = 30
SLOTS_PER_DAY = 48
MINUTES_PER_DAY = 24 * 60
DAYS_PER_WEEK = 7

# Buffer minutes appended after a lesson, keyed by lesson duration
LESSON_BUFFER_MINUTES = {25: 5, 50: 10}
DEFAULT_BUFFER_MINUTES = 10

# Business-hours preset for the availability editor (Monday-first days 0..4)
BUSINESS_HOURS_START = "09:00"
BUSINESS_HOURS_END = "18:00"
BUSINESS_DAYS_MONDAY_FIRST = (0, 1, 2, 3, 4)
