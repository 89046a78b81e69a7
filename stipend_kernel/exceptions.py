"""
Typed exception hierarchy for the stipend compliance engine.

Every exception carries a class-level ``code`` (machine-readable, API-safe)
and stores its context as attributes, so callers catch by type and read
structured data instead of parsing messages.

Business outcomes (missing placement, amount out of tolerance, statutory
bound violated) are NOT exceptions: they are returned as fields of a
``ValidationResult``.  The classes below cover configuration errors and
malformed input that the validator converts into returned failures.

    StipendKernelError (base)
    |
    +-- RuleTableError
    |   +-- RuleTableNotFoundError
    |   +-- InvalidRuleTableError
    |
    +-- PlacementDataError
        +-- InvalidBirthDateError
        +-- AgeOutOfRangeError

Code                      | When raised
--------------------------|------------------------------------------------
RULE_TABLE_NOT_FOUND      | No rule table document for the fiscal year
INVALID_RULE_TABLE        | Rule table breaks a structural invariant
PLACEMENT_DATA_ERROR      | Placement context cannot be interpreted
INVALID_BIRTH_DATE        | Birth date after the as-of date
AGE_OUT_OF_RANGE          | Child age outside the configured age bands
"""


class StipendKernelError(Exception):
    """
    Base exception for all stipend engine errors.

    All subclasses must have a ``code`` class attribute.
    """

    code: str = "STIPEND_KERNEL_ERROR"


# Rule table errors


class RuleTableError(StipendKernelError):
    """Base exception for rule table configuration errors."""

    code: str = "RULE_TABLE_ERROR"


class RuleTableNotFoundError(RuleTableError):
    """No rule table is configured for the requested fiscal year."""

    code: str = "RULE_TABLE_NOT_FOUND"

    def __init__(self, fiscal_year: int, config_dir: str):
        self.fiscal_year = fiscal_year
        self.config_dir = config_dir
        super().__init__(
            f"No rule table for fiscal year {fiscal_year} in {config_dir}"
        )


class InvalidRuleTableError(RuleTableError):
    """Rule table violates one or more structural invariants."""

    code: str = "INVALID_RULE_TABLE"

    def __init__(self, fiscal_year: int, problems: tuple[str, ...]):
        self.fiscal_year = fiscal_year
        self.problems = problems
        super().__init__(
            f"Rule table for fiscal year {fiscal_year} is invalid: "
            + "; ".join(problems)
        )


# Placement data errors


class PlacementDataError(StipendKernelError):
    """Placement context is present but cannot be interpreted."""

    code: str = "PLACEMENT_DATA_ERROR"


class InvalidBirthDateError(PlacementDataError):
    """Birth date lies after the date the age is computed for."""

    code: str = "INVALID_BIRTH_DATE"

    def __init__(self, birth_date: object, as_of: object):
        self.birth_date = str(birth_date)
        self.as_of = str(as_of)
        super().__init__(
            f"Birth date {birth_date} is after as-of date {as_of}"
        )


class AgeOutOfRangeError(PlacementDataError):
    """Child age is not covered by any configured age band."""

    code: str = "AGE_OUT_OF_RANGE"

    def __init__(self, age: int, min_age: int, max_age: int):
        self.age = age
        self.min_age = min_age
        self.max_age = max_age
        super().__init__(
            f"Age {age} is outside the covered range {min_age}-{max_age}"
        )
