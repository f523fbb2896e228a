"""Distance and duration display helpers"""

from typing import Optional

KM_TO_MILES = 0.621371

EMPTY_VALUE = "—"


def convert_distance(distance_km: float, unit: str) -> float:
    """Convert a kilometre distance into the requested unit"""
    if unit == "miles":
        return distance_km * KM_TO_MILES
    if unit == "km":
        return distance_km
    raise ValueError(f"Unknown distance unit: {unit}")


def format_distance(distance_km: float, unit: str) -> str:
    """Format distance with one decimal, e.g. '6.2 miles'"""
    converted = convert_distance(distance_km, unit)
    return f"{converted:.1f} {unit}"


def meters_to_km(meters: float) -> float:
    return meters / 1000


def format_route_distance(meters: Optional[int], unit: str) -> str:
    """Format a stored route distance (meters) in the user's unit"""
    if meters is None:
        return EMPTY_VALUE
    return format_distance(meters_to_km(meters), unit)


def format_duration(seconds: Optional[int]) -> str:
    """Human readable duration, e.g. '1 hr 5 min'"""
    if seconds is None:
        return EMPTY_VALUE

    total_minutes = round(seconds / 60)
    hours, minutes = divmod(total_minutes, 60)
    if hours and minutes:
        return f"{hours} hr {minutes} min"
    if hours:
        return f"{hours} hr"
    return f"{minutes} min"


def parse_google_duration(value: Optional[str]) -> int:
    """Google Routes returns durations as '1234s'"""
    if not value:
        return 0
    return int(float(value.rstrip("s")))
