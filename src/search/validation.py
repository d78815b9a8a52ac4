"""Search request validation.

Every field is checked by an ordered tuple of named predicates. The first
predicate that fails for a field becomes that field's violation; all fields are
always checked so a client sees every problem in one round trip.

Usage:
    from src.search.validation import validate_search_request

    result = validate_search_request(payload)
    if not result.ok:
        return result.error.fields   # {"radius": "Radius cannot exceed 50 miles"}
    request = result.value
"""

import math
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from src.core.exceptions import SearchValidationError
from src.search.models import (
    ADDRESS_MAX_LENGTH,
    ADDRESS_MIN_LENGTH,
    COMPETITOR_COUNT_MAX,
    COMPETITOR_COUNT_MIN,
    RADIUS_MAX_MILES,
    RADIUS_MIN_MILES,
    SearchRequest,
)


@dataclass(frozen=True)
class Violation:
    """A single field-level rule failure."""

    field: str
    code: str
    message: str


@dataclass(frozen=True)
class Check:
    """A named predicate over one field value."""

    code: str
    passes: Callable[[Any], bool]
    message: str


@dataclass(frozen=True)
class ValidationResult:
    """Either a validated ``SearchRequest`` or the error describing why not."""

    value: Optional[SearchRequest] = None
    error: Optional[SearchValidationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> SearchRequest:
        """Return the request or raise the validation error."""
        if self.error is not None:
            raise self.error
        if self.value is None:
            raise ValueError("ValidationResult holds neither a value nor an error")
        return self.value


# =============================================================================
# Predicates
# =============================================================================


def is_string(value: Any) -> bool:
    return isinstance(value, str)


def is_number(value: Any) -> bool:
    """Real, finite numbers only. Booleans and numeric strings do not count."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    # Ints compare exactly against the bounds; only floats can be NaN or inf.
    if isinstance(value, int):
        return True
    return math.isfinite(value)


def is_whole_number(value: Any) -> bool:
    return isinstance(value, int) or float(value).is_integer()


def has_letter(value: str) -> bool:
    return any(("a" <= ch <= "z") or ("A" <= ch <= "Z") for ch in value)


ADDRESS_CHECKS: tuple[Check, ...] = (
    Check("type_mismatch", is_string, "Address must be a string"),
    Check(
        "too_short",
        lambda v: len(v) >= ADDRESS_MIN_LENGTH,
        f"Address must be at least {ADDRESS_MIN_LENGTH} characters",
    ),
    Check("too_long", lambda v: len(v) <= ADDRESS_MAX_LENGTH, "Address is too long"),
    Check("missing_letters", has_letter, "Address must contain letters"),
)

RADIUS_CHECKS: tuple[Check, ...] = (
    Check("type_mismatch", is_number, "Radius must be a number"),
    Check(
        "out_of_range",
        lambda v: v >= RADIUS_MIN_MILES,
        f"Radius must be at least {RADIUS_MIN_MILES} mile",
    ),
    Check(
        "out_of_range",
        lambda v: v <= RADIUS_MAX_MILES,
        f"Radius cannot exceed {RADIUS_MAX_MILES} miles",
    ),
)

COMPETITOR_COUNT_CHECKS: tuple[Check, ...] = (
    Check("type_mismatch", is_number, "Competitor count must be a number"),
    Check("not_integer", is_whole_number, "Competitor count must be a whole number"),
    Check(
        "out_of_range",
        lambda v: v >= COMPETITOR_COUNT_MIN,
        f"Must analyze at least {COMPETITOR_COUNT_MIN} competitor",
    ),
    Check(
        "out_of_range",
        lambda v: v <= COMPETITOR_COUNT_MAX,
        f"Cannot analyze more than {COMPETITOR_COUNT_MAX} competitors",
    ),
)

# (wire field name, accepted input keys, label for "is required", checks)
FIELD_RULES: tuple[tuple[str, tuple[str, ...], str, tuple[Check, ...]], ...] = (
    ("address", ("address",), "Address", ADDRESS_CHECKS),
    ("radius", ("radius",), "Radius", RADIUS_CHECKS),
    (
        "competitorCount",
        ("competitorCount", "competitor_count"),
        "Competitor count",
        COMPETITOR_COUNT_CHECKS,
    ),
)

_MISSING = object()


def _lookup(raw: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return _MISSING


def check_field(field: str, value: Any, checks: tuple[Check, ...]) -> Optional[Violation]:
    """Run ``checks`` in order and return the first failure, if any."""
    for check in checks:
        if not check.passes(value):
            return Violation(field=field, code=check.code, message=check.message)
    return None


# =============================================================================
# Entry Points
# =============================================================================


def validate_search_request(raw: Any) -> ValidationResult:
    """
    Validate raw client input into a ``SearchRequest``.

    Args:
        raw: Decoded request body (normally a dict from JSON).

    Returns:
        ValidationResult holding the request, or an error with one violation
        per failing field.
    """
    if not isinstance(raw, Mapping):
        return ValidationResult(
            error=SearchValidationError(
                [Violation("body", "type_mismatch", "Request body must be an object")]
            )
        )

    violations: list[Violation] = []
    values: dict[str, Any] = {}

    for field, keys, label, checks in FIELD_RULES:
        value = _lookup(raw, keys)
        if value is _MISSING:
            violations.append(Violation(field, "missing", f"{label} is required"))
            continue

        violation = check_field(field, value, checks)
        if violation is not None:
            violations.append(violation)
        else:
            values[field] = value

    if violations:
        return ValidationResult(error=SearchValidationError(violations))

    return ValidationResult(
        value=SearchRequest(
            address=values["address"],
            radius=float(values["radius"]),
            competitor_count=int(values["competitorCount"]),
        )
    )


def parse_search_request(raw: Any) -> SearchRequest:
    """Validate ``raw`` and return the request, raising ``SearchValidationError``."""
    return validate_search_request(raw).unwrap()
