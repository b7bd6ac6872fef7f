import datetime

CLOSED_LABEL = "Encerrado"


def is_open(now: datetime.datetime, deadline: datetime.datetime) -> bool:
    return now < deadline


def time_left_label(now: datetime.datetime, deadline: datetime.datetime) -> str:
    """Countdown shown above the form, e.g. '3d 4h 5m 6s'."""
    diff = deadline - now
    if diff.total_seconds() <= 0:
        return CLOSED_LABEL
    total = int(diff.total_seconds())
    days, rem = divmod(total, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, seconds = divmod(rem, 60)
    return f"{days}d {hours}h {minutes}m {seconds}s"
