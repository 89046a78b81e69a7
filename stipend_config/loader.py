"""
Rule Table Loader (``stipend_config.loader``).

Responsibility
--------------
Loads a fiscal-year YAML document and parses it into the typed
``stipend_config.schema.RuleTable``.  This is internal tooling: runtime
callers go through ``stipend_config.get_rule_table()``.

Invariants enforced
-------------------
* All amounts and factors are parsed as ``Decimal`` from their string
  form; YAML floats are converted through ``str``.
* No silent defaults for required keys: a missing key raises ``KeyError``.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  canonical document, recorded on the table for audit.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Non-numeric amounts  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from stipend_config.schema import AgeBand, RuleTable, Tolerances
from stipend_kernel.domain.values import to_decimal


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def parse_age_band(data: dict[str, Any]) -> AgeBand:
    """Parse an AgeBand from a dict."""
    min_age = int(data["min_age"])
    max_age = int(data["max_age"])
    return AgeBand(
        label=str(data.get("label") or f"{min_age}-{max_age}"),
        min_age=min_age,
        max_age=max_age,
        multiplier=to_decimal(data["multiplier"]),
    )


def parse_tolerances(data: dict[str, Any] | None) -> Tolerances:
    """Parse Tolerances; absent keys keep the statutory defaults."""
    if not data:
        return Tolerances()
    defaults = Tolerances()
    return Tolerances(
        reconciliation=to_decimal(data.get("reconciliation", defaults.reconciliation)),
        regional_floor=to_decimal(data.get("regional_floor", defaults.regional_floor)),
        age_group_floor=to_decimal(data.get("age_group_floor", defaults.age_group_floor)),
        special_needs_floor=to_decimal(
            data.get("special_needs_floor", defaults.special_needs_floor)
        ),
        minimum_wage_batch_share=to_decimal(
            data.get("minimum_wage_batch_share", defaults.minimum_wage_batch_share)
        ),
    )


def parse_rule_table(data: dict[str, Any], checksum: str = "") -> RuleTable:
    """
    Parse a ``RuleTable`` from a dict.

    Raises:
        KeyError: if required keys are missing.
        ValueError: if an amount cannot be parsed.
    """
    allowances = data["allowances"]

    region_multipliers = tuple(
        (str(region), to_decimal(factor))
        for region, factor in sorted(data["regions"].items())
    )
    state_regions = tuple(
        (str(uf).strip().upper(), str(region))
        for uf, region in sorted(data["states"].items())
    )
    age_bands = tuple(
        sorted(
            (parse_age_band(b) for b in data["age_bands"]),
            key=lambda band: band.min_age,
        )
    )

    return RuleTable(
        fiscal_year=int(data["fiscal_year"]),
        minimum_wage=to_decimal(data["minimum_wage"]),
        base_benefit=to_decimal(data.get("base_benefit", data["minimum_wage"])),
        special_needs_multiplier=to_decimal(data["special_needs_multiplier"]),
        sibling_group_multiplier=to_decimal(data["sibling_group_multiplier"]),
        maximum_monthly_benefit=to_decimal(data["maximum_monthly_benefit"]),
        region_multipliers=region_multipliers,
        state_regions=state_regions,
        age_bands=age_bands,
        healthcare_allowance=to_decimal(allowances["healthcare"]),
        education_allowance=to_decimal(allowances["education"]),
        clothing_allowance_annual=to_decimal(allowances["clothing_annual"]),
        transport_allowance=to_decimal(allowances["transport"]),
        unknown_region_multiplier=to_decimal(data.get("unknown_region_multiplier", "1.00")),
        tolerances=parse_tolerances(data.get("tolerances")),
        currency=str(data.get("currency", "BRL")),
        legal_basis=str(data.get("legal_basis", "")),
        checksum=checksum,
    )


def load_rule_table(path: Path) -> RuleTable:
    """Load and parse one fiscal-year document, stamping its checksum."""
    data = load_yaml_file(path)
    return parse_rule_table(data, checksum=compute_checksum(data))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
