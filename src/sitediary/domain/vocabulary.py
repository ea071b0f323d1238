"""
Form vocabulary.

Fixed option lists offered by the entry form. Values are stored verbatim
on records; the store never re-validates against these lists.
"""

from __future__ import annotations

WEATHER_OPTIONS: dict[str, tuple[str, ...]] = {
    "sky": (
        "Clear",
        "Partly Cloudy",
        "Mostly Cloudy",
        "Overcast",
        "Foggy",
        "Hazy",
    ),
    "precipitation": (
        "None",
        "Light Rain",
        "Heavy Rain",
        "Drizzle",
        "Snow",
        "Sleet",
        "Hail",
    ),
    "temperature": (
        "Below 0°C",
        "0-10°C",
        "10-20°C",
        "20-30°C",
        "Above 30°C",
    ),
    "wind": (
        "Calm",
        "Light Breeze",
        "Moderate Wind",
        "Strong Wind",
        "Storm",
    ),
}

COMMON_TASKS: tuple[str, ...] = (
    "Site Inspection",
    "Equipment Maintenance",
    "Material Delivery",
    "Safety Meeting",
    "Progress Documentation",
    "Quality Control Check",
    "Team Coordination",
    "Environmental Assessment",
    "Resource Planning",
    "Schedule Review",
)

COMMON_EQUIPMENT: tuple[str, ...] = (
    "Safety Gear",
    "Hand Tools",
    "Power Tools",
    "Heavy Machinery",
    "Measuring Equipment",
    "Communication Devices",
    "First Aid Kit",
    "Documentation Tools",
    "Transportation",
    "Specialized Equipment",
)

UNITS: tuple[str, ...] = (
    "Hours",
    "Days",
    "Units",
    "Pieces",
    "Meters",
    "Square Meters",
    "Cubic Meters",
    "Kilograms",
    "Tons",
    "Percentage",
)


def is_known_weather_value(category: str, value: str) -> bool:
    """Check a weather value against the form vocabulary (informational only)."""
    return value in WEATHER_OPTIONS.get(category, ())
