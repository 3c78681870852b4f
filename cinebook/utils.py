import re
from datetime import datetime, timezone
from typing import Iterable, List, Tuple

SEAT_LABEL_RE = re.compile(r"^([A-Z]{1,3})([0-9]{1,3})$")


# ---------------- Time ----------------
def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# ---------------- Seats ----------------
def normalize_seat_label(label: str) -> str:
    return str(label).strip().upper()


def is_valid_seat_label(label: str) -> bool:
    return bool(SEAT_LABEL_RE.match(label))


def seat_sort_key(label: str) -> Tuple[str, int, str]:
    # A2 sorts before A10; labels that don't parse go last, alphabetically
    match = SEAT_LABEL_RE.match(label)
    if not match:
        return ("~", 0, label)
    return (match.group(1), int(match.group(2)), label)


def sorted_seats(labels: Iterable[str]) -> List[str]:
    return sorted(set(labels), key=seat_sort_key)
