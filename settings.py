"""Runtime configuration read from environment variables."""
import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping, Optional
from zoneinfo import ZoneInfo

from sources.location import DEFAULT_COORDINATES, Coordinates
from sources.ticketmaster import TicketmasterClient


@dataclass(frozen=True)
class Settings:
    """Configuration for one process."""
    ticketmaster_api_key: str = ""
    ticketmaster_base_url: str = TicketmasterClient.BASE_URL
    table_prefix: str = ""
    aws_region: str = "us-east-1"
    log_level: str = "INFO"
    timeout_seconds: int = 15
    max_retries: int = 3
    cache_ttl_minutes: int = 30
    search_radius_miles: int = 25
    calendar_timezone: str = "America/Chicago"
    default_latitude: float = DEFAULT_COORDINATES.latitude
    default_longitude: float = DEFAULT_COORDINATES.longitude

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Settings':
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Returns:
            Settings with defaults for unset variables

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            ticketmaster_api_key=env.get('TICKETMASTER_API_KEY', defaults.ticketmaster_api_key),
            ticketmaster_base_url=env.get('TICKETMASTER_BASE_URL', defaults.ticketmaster_base_url),
            table_prefix=env.get('TABLE_PREFIX', defaults.table_prefix),
            aws_region=env.get('AWS_REGION', defaults.aws_region),
            log_level=env.get('LOG_LEVEL', defaults.log_level),
            timeout_seconds=_number(env, 'TIMEOUT_SECONDS', defaults.timeout_seconds, int),
            max_retries=_number(env, 'MAX_RETRIES', defaults.max_retries, int),
            cache_ttl_minutes=_number(env, 'CACHE_TTL_MINUTES', defaults.cache_ttl_minutes, int),
            search_radius_miles=_number(env, 'SEARCH_RADIUS_MILES', defaults.search_radius_miles, int),
            calendar_timezone=env.get('CALENDAR_TIMEZONE', defaults.calendar_timezone),
            default_latitude=_number(env, 'DEFAULT_LATITUDE', defaults.default_latitude, float),
            default_longitude=_number(env, 'DEFAULT_LONGITUDE', defaults.default_longitude, float),
        )

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(minutes=self.cache_ttl_minutes)

    @property
    def timezone(self) -> ZoneInfo:
        return ZoneInfo(self.calendar_timezone)

    @property
    def fallback_coordinates(self) -> Coordinates:
        return Coordinates(self.default_latitude, self.default_longitude)


def _number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from e
