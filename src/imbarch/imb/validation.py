"""
Validation for IMB configuration.

These checks only report. The encoder accepts any configuration and pads or
truncates the fields, so callers decide whether an issue is worth stopping
for; the CLI prints them as warnings.
"""

from __future__ import annotations

from dataclasses import dataclass

from .models import IMBConfig, SERVICE_TYPES
from .payload import (
    BARCODE_ID_WIDTH,
    SERVICE_TYPE_ID_WIDTH,
    digits_only,
)


@dataclass(frozen=True)
class ValidationIssue:
    """
    Represents a configuration problem.

    Attributes:
        path: Config field name (e.g., "mailer_id")
        message: Human-readable description of the issue
    """

    path: str
    message: str


def _check_fixed_width(name: str, value: str, width: int) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if digits_only(value) != value:
        issues.append(ValidationIssue(name, f"Contains non-digit characters: {value!r}."))
    if len(value) > width:
        kept = value.rjust(width, "0")[:width]
        issues.append(
            ValidationIssue(name, f"Longer than {width} digits; will be truncated to {kept!r}.")
        )
    return issues


def validate_config(config: IMBConfig) -> list[ValidationIssue]:
    """
    Check an IMB configuration against the payload field layout.

    Reports:
    - Barcode ID / Service Type ID with non-digits or too many characters
    - Service Type ID not in the known catalogue
    - Mailer ID with non-digits (they are stripped)
    - Mailer ID that is not 6 or 9 digits (payload will not be 31 digits)

    Parameters:
        config: Configuration to validate

    Returns:
        List of validation issues (empty if valid)

    Example:
        >>> issues = validate_config(IMBConfig(mailer_id="12345"))
        >>> [issue.path for issue in issues]
        ['mailer_id']
    """
    issues: list[ValidationIssue] = []

    issues.extend(_check_fixed_width("barcode_id", config.barcode_id, BARCODE_ID_WIDTH))
    issues.extend(
        _check_fixed_width("service_type_id", config.service_type_id, SERVICE_TYPE_ID_WIDTH)
    )

    known = {stid for stid, _label in SERVICE_TYPES}
    stid = config.service_type_id.rjust(SERVICE_TYPE_ID_WIDTH, "0")[:SERVICE_TYPE_ID_WIDTH]
    if stid not in known:
        issues.append(ValidationIssue("service_type_id", f"Unknown Service Type ID {stid!r}."))

    mailer_id = digits_only(config.mailer_id)
    if mailer_id != config.mailer_id:
        issues.append(
            ValidationIssue("mailer_id", f"Non-digit characters will be stripped: {config.mailer_id!r}.")
        )
    if len(mailer_id) not in (6, 9):
        issues.append(
            ValidationIssue(
                "mailer_id",
                f"Must be 6 or 9 digits, got {len(mailer_id)}; payloads will not be 31 digits.",
            )
        )

    return issues
