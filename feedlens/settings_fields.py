"""
Catalogue of per-feed operational settings and their bounds.

Each field has a type, declared bounds (an inclusive integer range or an
enumeration of choices) and the hard-coded system default used when no scope
defines it.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .errors import OutOfBoundsValue, UnknownSettingsField


@dataclass(frozen=True)
class SettingsField:
    name: str
    default: Any
    minimum: Optional[int] = None
    maximum: Optional[int] = None
    choices: Optional[Tuple[str, ...]] = None
    unit: str = ""

    def is_valid(self, value: Any) -> bool:
        if self.choices is not None:
            return isinstance(value, str) and value in self.choices
        # bool is an int subclass; reject it explicitly
        if isinstance(value, bool) or not isinstance(value, int):
            return False
        return self.minimum <= value <= self.maximum

    def validate(self, value: Any) -> Any:
        if not self.is_valid(value):
            raise OutOfBoundsValue(self.name, value, self.minimum, self.maximum, self.choices)
        return value

    def describe(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"name": self.name, "default": self.default}
        if self.choices is not None:
            out["choices"] = list(self.choices)
        else:
            out.update({"minimum": self.minimum, "maximum": self.maximum, "unit": self.unit})
        return out


REFRESH_INTERVAL = SettingsField("refresh_interval", 60, 15, 1440, unit="minutes")
MAX_ARTICLES_PER_FEED = SettingsField("max_articles_per_feed", 500, 50, 5000, unit="articles")
MAX_ARTICLE_AGE = SettingsField("max_article_age", 90, 1, 365, unit="days")
EXTRACTION_METHOD = SettingsField("extraction_method", "rss", choices=("rss", "readability", "playwright"))

FIELDS: Dict[str, SettingsField] = {
    f.name: f for f in (REFRESH_INTERVAL, MAX_ARTICLES_PER_FEED, MAX_ARTICLE_AGE, EXTRACTION_METHOD)
}

SYSTEM_DEFAULTS: Dict[str, Any] = {name: f.default for name, f in FIELDS.items()}


def get_field(name: str) -> SettingsField:
    try:
        return FIELDS[name]
    except KeyError:
        raise UnknownSettingsField(name) from None


def validate_override(values: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate a partial override. ``None`` values mean "revert to inherit"
    and pass through untouched. Raises on the first bad field; nothing is
    coerced or clamped.
    """
    for name, value in values.items():
        field = get_field(name)
        if value is not None:
            field.validate(value)
    return values
