from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

from drivedesk.config import settings


APP_TIMEZONE = settings.app_timezone or 'America/Argentina/Buenos_Aires'
APP_ZONEINFO = ZoneInfo(APP_TIMEZONE)


class TimeProvider:
    def now(self) -> datetime:
        return datetime.now(APP_ZONEINFO)

    def today(self) -> date:
        return self.now().date()

    def current_month(self) -> str:
        return self.today().strftime('%Y-%m')


default_time_provider = TimeProvider()
