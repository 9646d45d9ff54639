from dataclasses import asdict, dataclass
from datetime import UTC, datetime

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 60 * SECONDS_PER_MINUTE
SECONDS_PER_DAY = 24 * SECONDS_PER_HOUR


@dataclass(frozen=True)
class Countdown:
    days: int
    hours: int
    minutes: int
    seconds: int

    @property
    def expired(self) -> bool:
        return not (self.days or self.hours or self.minutes or self.seconds)

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


def countdown_to(target: datetime, now: datetime | None = None) -> Countdown:
    """Break the time left until `target` into days/hours/minutes/seconds, floored at zero."""
    now = now or datetime.now(UTC)
    if target.tzinfo is None:
        target = target.replace(tzinfo=UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)

    remaining = int((target - now).total_seconds())
    if remaining <= 0:
        return Countdown(0, 0, 0, 0)

    days, remaining = divmod(remaining, SECONDS_PER_DAY)
    hours, remaining = divmod(remaining, SECONDS_PER_HOUR)
    minutes, seconds = divmod(remaining, SECONDS_PER_MINUTE)
    return Countdown(days=days, hours=hours, minutes=minutes, seconds=seconds)
