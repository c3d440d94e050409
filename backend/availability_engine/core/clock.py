"""Clock collaborator: "now" plus the viewer's timezone."""

from datetime import date, datetime
from typing import Optional

import pytz

from .timezone_utils import get_timezone


class Clock:
    """Wall clock bound to the viewer's timezone."""

    def __init__(self, timezone_name: Optional[str] = None):
        self.tz: pytz.BaseTzInfo = get_timezone(timezone_name)

    @property
    def timezone_name(self) -> str:
        return str(self.tz)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()
