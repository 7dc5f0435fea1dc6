"""
Configuration Loader (``hr_config.loader``).

Responsibility
--------------
Loads a labor policy set directory (``root.yaml``) and parses it into the
frozen ``hr_config.schema`` dataclasses.  Runtime callers go through
``hr_config.get_active_policy()``; this module is its internal tooling.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Depends on the overtime
engine only for the holiday calendar type the schema hands out.

Invariants enforced
-------------------
* No silent defaults for required keys: a missing key is a ``ValueError``
  naming the set and the key.
* Holiday ranges and Ramadan periods must not end before they start.
* ``compute_checksum`` is a deterministic SHA-256 over the canonical JSON
  of the raw YAML document.

Failure modes
-------------
* Missing ``root.yaml``  -> ``FileNotFoundError``.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Structural problems  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from pathlib import Path
from typing import Any

import yaml

from hr_config.schema import HolidayDef, LaborPolicy, PolicyScope, RamadanPeriod

ROOT_FILE = "root.yaml"

WEEKDAYS = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load one YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        data = yaml.safe_load(f)
    return data or {}


def parse_date(value: Any) -> date:
    """Accept ISO strings and dates already converted by the YAML parser."""
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def parse_weekday(value: Any) -> int:
    if isinstance(value, int) and 0 <= value <= 6:
        return value
    key = str(value).strip().lower()
    if key not in WEEKDAYS:
        raise ValueError(f"Unknown weekday: {value!r}")
    return WEEKDAYS[key]


def parse_scope(data: dict[str, Any]) -> PolicyScope:
    return PolicyScope(
        company_id=str(data["company_id"]),
        jurisdiction=data["jurisdiction"],
        currency=data["currency"],
        effective_from=parse_date(data["effective_from"]),
        effective_to=parse_date(data["effective_to"]) if data.get("effective_to") else None,
    )


def parse_holiday(data: dict[str, Any]) -> HolidayDef:
    start = parse_date(data["start_date"])
    end = parse_date(data["end_date"]) if data.get("end_date") else None
    if end is not None and end < start:
        raise ValueError(f"Holiday {data['name']!r} ends before it starts")
    return HolidayDef(name=data["name"], start_date=start, end_date=end)


def parse_ramadan_period(data: dict[str, Any]) -> RamadanPeriod:
    start = parse_date(data["start_date"])
    end = parse_date(data["end_date"])
    if end < start:
        raise ValueError(f"Ramadan period {start}..{end} ends before it starts")
    return RamadanPeriod(start_date=start, end_date=end)


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form; identical data, identical checksum."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_policy(data: dict[str, Any]) -> LaborPolicy:
    """
    Parse a whole policy document.

    Raises:
        KeyError: a required key is missing.
        ValueError: a value is malformed.
    """
    weekend = tuple(sorted({parse_weekday(d) for d in data["weekend_days"]}))
    if len(weekend) >= 7:
        raise ValueError("weekend_days cannot cover the whole week")
    return LaborPolicy(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        scope=parse_scope(data["scope"]),
        weekend_days=weekend,
        public_holidays=tuple(parse_holiday(h) for h in data.get("public_holidays") or ()),
        ramadan_periods=tuple(parse_ramadan_period(r) for r in data.get("ramadan_periods") or ()),
        checksum=compute_checksum(data),
    )


def load_policy_set(directory: Path) -> LaborPolicy:
    """Load and parse ``directory/root.yaml``."""
    root = directory / ROOT_FILE
    if not root.exists():
        raise FileNotFoundError(f"Policy set has no {ROOT_FILE}: {directory}")
    data = load_yaml_file(root)
    try:
        return parse_policy(data)
    except KeyError as exc:
        raise ValueError(f"Policy set {directory.name!r} is missing key {exc.args[0]!r}") from exc
