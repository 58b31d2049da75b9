"""
Pydantic models for IMB configuration.

The ID fields are free-form strings. The encoder pads and truncates them
rather than rejecting them, so the model only enforces types.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .payload import digits_only, serial_width


DEFAULT_BARCODE_ID = "00"
DEFAULT_SERVICE_TYPE_ID = "300"
DEFAULT_MAILER_ID = "123456"
DEFAULT_START_SEQUENCE_NUMBER = 1

# Service Type IDs offered by the settings form, in display order.
SERVICE_TYPES: list[tuple[str, str]] = [
    ("300", "First-Class Mail - No Services (300)"),
    ("301", "First-Class Mail - Manual Correction (301)"),
    ("310", "First-Class Mail - Electronic Service (310)"),
    ("311", "First-Class Mail - Auto-Correction (311)"),
    ("261", "Marketing Mail - No Services (261)"),
    ("271", "Marketing Mail - Manual Correction (271)"),
    ("080", "Priority Mail - No Services (080)"),
    ("081", "Priority Mail - Manual Correction (081)"),
    ("700", "Periodicals - No Services (700)"),
    ("701", "Periodicals - Manual Correction (701)"),
    ("000", "Custom / Other"),
]


class IMBConfig(BaseModel):
    """
    User-editable IMB settings for one upload session.

    Accepts both snake_case names and the camelCase keys used by exported
    settings files (``barcodeId``, ``serviceTypeId``, ``mailerId``,
    ``startSequenceNumber``).

    Example:
        >>> config = IMBConfig.model_validate({"mailerId": "123456789"})
        >>> config.serial_width
        6
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    barcode_id: str = Field(default=DEFAULT_BARCODE_ID, alias="barcodeId")
    service_type_id: str = Field(default=DEFAULT_SERVICE_TYPE_ID, alias="serviceTypeId")
    mailer_id: str = Field(default=DEFAULT_MAILER_ID, alias="mailerId")
    start_sequence_number: int = Field(
        default=DEFAULT_START_SEQUENCE_NUMBER, ge=0, alias="startSequenceNumber"
    )

    @property
    def serial_width(self) -> int:
        """Serial number width implied by the mailer id (9 for a 6-digit MID, else 6)."""
        return serial_width(digits_only(self.mailer_id))
