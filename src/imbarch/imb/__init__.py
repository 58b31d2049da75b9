"""
Intelligent Mail Barcode payload utilities.

This module provides the configuration model, the payload encoder and
non-rejecting configuration checks.

Basic usage:
    >>> from imbarch.imb import IMBConfig, encode, validate_config
    >>>
    >>> config = IMBConfig(mailer_id="123456")
    >>> for issue in validate_config(config):
    ...     print(f"{issue.path}: {issue.message}")
    >>> encode(config, 1, "90210", "1234", "56")
    '0030012345600000000190210123456'
"""

from .models import (
    IMBConfig,
    SERVICE_TYPES,
)
from .payload import (
    PAYLOAD_LENGTH,
    PayloadFields,
    digits_only,
    encode,
    routing_code,
    serial_width,
    split_payload,
)
from .validation import (
    ValidationIssue,
    validate_config,
)

__all__ = [
    # Models
    "IMBConfig",
    "SERVICE_TYPES",
    # Payload
    "PAYLOAD_LENGTH",
    "PayloadFields",
    "digits_only",
    "encode",
    "routing_code",
    "serial_width",
    "split_payload",
    # Validation
    "ValidationIssue",
    "validate_config",
]
