# feedlens/settings_resolver.py
"""
Strict-precedence resolution of feed settings: feed > category > user > system.

The first scope that *defines* a field (key present in its override record)
wins outright. Values are trusted because they were validated on write, but a
value that violates its bounds still fails loudly.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .errors import CorruptSettingsValue
from .settings_fields import FIELDS, SYSTEM_DEFAULTS, get_field

# nearest first
SCOPE_ORDER = ("feed", "category", "user")


@dataclass(frozen=True)
class ResolvedValue:
    value: Any
    source: str  # feed | category | user | system

    def as_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "source": self.source}


def resolve(
    field: str,
    feed_override: Optional[Mapping[str, Any]] = None,
    category_override: Optional[Mapping[str, Any]] = None,
    user_default: Optional[Mapping[str, Any]] = None,
    system_default: Optional[Mapping[str, Any]] = None,
) -> ResolvedValue:
    fdef = get_field(field)
    layers = (feed_override, category_override, user_default)
    for scope, override in zip(SCOPE_ORDER, layers):
        if override and field in override:
            value = override[field]
            if not fdef.is_valid(value):
                raise CorruptSettingsValue(field, value, scope)
            return ResolvedValue(value, scope)

    defaults = system_default if system_default is not None else SYSTEM_DEFAULTS
    return ResolvedValue(defaults.get(field, fdef.default), "system")


def resolve_all(
    feed_override: Optional[Mapping[str, Any]] = None,
    category_override: Optional[Mapping[str, Any]] = None,
    user_default: Optional[Mapping[str, Any]] = None,
    system_default: Optional[Mapping[str, Any]] = None,
) -> Dict[str, ResolvedValue]:
    return {
        name: resolve(name, feed_override, category_override, user_default, system_default)
        for name in FIELDS
    }
