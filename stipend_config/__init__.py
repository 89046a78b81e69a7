"""
stipend_config -- single public entrypoint for the fiscal-year rule table.

Responsibility:
    Provides the ONLY way to obtain the statutory rule table at runtime
    through ``get_rule_table()``.  Engines and services receive a
    ``RuleTable`` instance; none of them read YAML files directly.

Invariants enforced:
    - Validation before use: a table that breaks a structural invariant is
      never returned (``InvalidRuleTableError``).
    - Load once: a table is parsed once per (fiscal year, directory) and
      cached for the life of the process.  Tables are immutable.

Failure modes:
    - ``RuleTableNotFoundError`` -- no ``FY<year>.yaml`` in the directory.
    - ``InvalidRuleTableError`` -- structural validation failed.
    - ``KeyError`` / ``ValueError`` / ``yaml.YAMLError`` -- malformed document.

Audit relevance:
    Every first load emits a ``STIPEND_CONFIG_TRACE`` log entry with the
    fiscal year and the SHA-256 checksum of the source document.  The same
    checksum is stamped on every compliance report.
"""

from __future__ import annotations

import logging
import re
import threading
from pathlib import Path

from stipend_config.loader import load_rule_table
from stipend_config.schema import (
    FEDERATIVE_UNITS,
    UNKNOWN_REGION,
    AgeBand,
    RegionResolution,
    RuleTable,
    Tolerances,
)
from stipend_config.validator import validate_rule_table
from stipend_kernel.exceptions import InvalidRuleTableError, RuleTableNotFoundError

_logger = logging.getLogger("stipend_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"
_FILE_PATTERN = re.compile(r"^FY(\d{4})\.ya?ml$")

_cache: dict[tuple[int, str], RuleTable] = {}
_cache_lock = threading.Lock()


def _rule_table_path(fiscal_year: int, config_dir: Path) -> Path | None:
    for suffix in (".yaml", ".yml"):
        candidate = config_dir / f"FY{fiscal_year}{suffix}"
        if candidate.is_file():
            return candidate
    return None


def available_fiscal_years(config_dir: Path | None = None) -> tuple[int, ...]:
    """Fiscal years that have a rule table document, ascending."""
    directory = config_dir or _DEFAULT_CONFIG_DIR
    years = set()
    for path in directory.iterdir():
        match = _FILE_PATTERN.match(path.name)
        if match:
            years.add(int(match.group(1)))
    return tuple(sorted(years))


def get_rule_table(fiscal_year: int, config_dir: Path | None = None) -> RuleTable:
    """Return the validated rule table for ``fiscal_year``.

    Raises:
        RuleTableNotFoundError: if no document exists for the year.
        InvalidRuleTableError: if the document breaks an invariant, or
            declares a different fiscal year than its file name.
    """
    directory = config_dir or _DEFAULT_CONFIG_DIR
    key = (fiscal_year, str(directory.resolve()))

    with _cache_lock:
        cached = _cache.get(key)
    if cached is not None:
        return cached

    path = _rule_table_path(fiscal_year, directory)
    if path is None:
        raise RuleTableNotFoundError(fiscal_year, str(directory))

    table = load_rule_table(path)
    problems = validate_rule_table(table)
    if table.fiscal_year != fiscal_year:
        problems = problems + (
            f"document declares fiscal_year {table.fiscal_year}",
        )
    if problems:
        raise InvalidRuleTableError(fiscal_year, problems)

    with _cache_lock:
        table = _cache.setdefault(key, table)

    _logger.info(
        "STIPEND_CONFIG_TRACE",
        extra={
            "trace_type": "STIPEND_CONFIG_TRACE",
            "fiscal_year": fiscal_year,
            "checksum": table.checksum,
            "source": str(path),
            "age_band_count": len(table.age_bands),
            "region_count": len(table.region_multipliers),
        },
    )
    return table


def clear_rule_table_cache() -> None:
    """Forget cached tables. FOR TESTING ONLY."""
    with _cache_lock:
        _cache.clear()


__all__ = [
    "FEDERATIVE_UNITS",
    "UNKNOWN_REGION",
    "AgeBand",
    "RegionResolution",
    "RuleTable",
    "Tolerances",
    "available_fiscal_years",
    "clear_rule_table_cache",
    "get_rule_table",
    "load_rule_table",
    "validate_rule_table",
]
