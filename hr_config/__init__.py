"""
hr_config -- single public entrypoint for labor policy configuration.

Responsibility:
    Provides the ONLY way to obtain labor policy at runtime through
    ``get_active_policy()``: weekly rest days, the public-holiday table and
    Ramadan periods for a company on a date.  No other component reads the
    YAML sets directly.

Architecture position:
    Configuration -- YAML-driven policy, sits above ``hr_kernel`` and
    ``hr_engines``.  The kernel and the engines MUST NEVER import from
    ``hr_config``; callers pass the policy's figures into engine calls.

Invariants enforced:
    - Single entrypoint: all runtime policy flows through ``get_active_policy()``.
    - Deterministic loading: the same YAML always yields the same checksum.
    - A company-specific set beats a wildcard set; among equals the highest
      version wins.

Failure modes:
    - ``FileNotFoundError`` -- no set covers the company on that date.
    - ``ValueError`` -- a set is structurally invalid.

Audit relevance:
    Every successful call emits an ``HR_CONFIG_TRACE`` log record with the
    config id, version, checksum and scope, tying each calculation to the
    exact policy version that governed it.
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path

from hr_config.loader import ROOT_FILE, load_policy_set
from hr_config.schema import HolidayDef, LaborPolicy, PolicyScope, RamadanPeriod

_logger = logging.getLogger("hr_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_policy(
    company_id: str,
    as_of: date,
    config_dir: Path | None = None,
) -> LaborPolicy:
    """The ONLY public configuration entrypoint.

    Args:
        company_id: Tenant identifier matched against each set's scope.
        as_of: Date the policy must be effective on.
        config_dir: Override path to the sets directory.
            Defaults to hr_config/sets/.

    Raises:
        FileNotFoundError: If the directory is missing or no set matches.
        ValueError: If a set fails to parse.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    if not sets_dir.is_dir():
        raise FileNotFoundError(f"Configuration sets directory not found: {sets_dir}")

    candidates: list[LaborPolicy] = []
    for subdir in sorted(sets_dir.iterdir()):
        if not subdir.is_dir() or not (subdir / ROOT_FILE).exists():
            continue
        policy = load_policy_set(subdir)
        if policy.scope.covers(company_id, as_of):
            candidates.append(policy)

    if not candidates:
        raise FileNotFoundError(
            f"No labor policy found for company_id='{company_id}' "
            f"as_of={as_of} in {sets_dir}"
        )

    policy = max(
        candidates,
        key=lambda p: (p.scope.company_id == company_id, p.version),
    )

    _logger.info(
        "HR_CONFIG_TRACE",
        extra={
            "trace_type": "HR_CONFIG_TRACE",
            "config_id": policy.config_id,
            "config_version": policy.version,
            "checksum": policy.checksum,
            "scope_company_id": policy.scope.company_id,
            "scope_jurisdiction": policy.scope.jurisdiction,
            "requested_company_id": company_id,
            "holiday_count": len(policy.public_holidays),
            "ramadan_period_count": len(policy.ramadan_periods),
        },
    )
    return policy


__all__ = [
    "HolidayDef",
    "LaborPolicy",
    "PolicyScope",
    "RamadanPeriod",
    "get_active_policy",
]
