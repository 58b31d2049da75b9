"""
Intelligent Mail Barcode data payload construction.

Builds the 31-digit IMB data string from the session configuration, a
per-mailpiece sequence number and the routing fields of a standardized
address. This does NOT produce the 65 encoded bars (that needs the CRC and
codeword tables of the USPS spec); it produces the digits those bars carry.

Layout:
    Barcode ID        2 digits
    Service Type ID   3 digits
    Mailer ID         6 or 9 digits
    Serial Number     9 or 6 digits (complements the Mailer ID to 15)
    Routing Code      11 digits (ZIP 5 + add-on 4 + delivery point 2)

Malformed inputs are padded or truncated, never rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import IMBConfig


PAYLOAD_LENGTH = 31
BARCODE_ID_WIDTH = 2
SERVICE_TYPE_ID_WIDTH = 3
ZIP_WIDTH = 5
PLUS4_WIDTH = 4
DELIVERY_POINT_WIDTH = 2
ROUTING_CODE_WIDTH = ZIP_WIDTH + PLUS4_WIDTH + DELIVERY_POINT_WIDTH

DEFAULT_PLUS4 = "0000"
DEFAULT_DELIVERY_POINT = "00"

_NON_DIGIT = re.compile(r"\D", re.ASCII)


@dataclass(frozen=True)
class PayloadFields:
    """
    A 31-digit payload split into its named fields.

    Attributes:
        barcode_id: 2-digit Barcode ID
        service_type_id: 3-digit Service Type ID
        mailer_id: 6- or 9-digit Mailer ID
        serial_number: 9- or 6-digit serial number
        zip: 5-digit ZIP
        plus4: 4-digit ZIP add-on
        delivery_point: 2-digit delivery point
    """

    barcode_id: str
    service_type_id: str
    mailer_id: str
    serial_number: str
    zip: str
    plus4: str
    delivery_point: str

    @property
    def routing_code(self) -> str:
        return f"{self.zip}{self.plus4}{self.delivery_point}"


def digits_only(value: str | None) -> str:
    """Strip every character that is not an ASCII digit."""
    if not value:
        return ""
    return _NON_DIGIT.sub("", str(value))


def serial_width(mailer_id: str) -> int:
    """
    Serial number width for an already-stripped Mailer ID.

    A 6-digit MID gets a 9-digit serial and a 9-digit MID a 6-digit serial.
    Any other length falls back to 6, leaving the payload off its nominal
    31 digits.
    """
    if len(mailer_id) == 6:
        return 9
    return 6


def _pad_keep_first(value: str, width: int) -> str:
    return value.rjust(width, "0")[:width]


def _pad_keep_last(value: str, width: int) -> str:
    return value.rjust(width, "0")[-width:]


def routing_code(
    zip_code: str | None,
    plus4: str | None = DEFAULT_PLUS4,
    delivery_point: str | None = DEFAULT_DELIVERY_POINT,
) -> str:
    """
    Build the routing code: ZIP (5) + add-on (4) + delivery point (2).

    Each part is reduced to its digits and left-padded with zeros. Parts are
    not truncated, so over-long input lengthens the result.

    Example:
        >>> routing_code("90210", "1234", "56")
        '90210123456'
        >>> routing_code("902-10", None, None)
        '90210000000'
    """
    if plus4 is None:
        plus4 = DEFAULT_PLUS4
    if delivery_point is None:
        delivery_point = DEFAULT_DELIVERY_POINT

    return (
        digits_only(zip_code).rjust(ZIP_WIDTH, "0")
        + digits_only(plus4).rjust(PLUS4_WIDTH, "0")
        + digits_only(delivery_point).rjust(DELIVERY_POINT_WIDTH, "0")
    )


def encode(
    config: IMBConfig,
    sequence_number: int,
    zip_code: str | None,
    plus4: str | None = DEFAULT_PLUS4,
    delivery_point: str | None = DEFAULT_DELIVERY_POINT,
) -> str:
    """
    Construct the IMB data payload for one mailpiece.

    Field policies differ and both are intentional:
    - Barcode ID and Service Type ID are padded, then the FIRST N characters
      are kept ("12345" -> "12").
    - The serial number is padded, then the LAST N characters are kept
      (1234567 at width 6 -> "234567").
    - The Mailer ID is only stripped to digits; its length picks the serial
      width (see serial_width()).

    Parameters:
        config: IMB settings (barcode id, STID, mailer id)
        sequence_number: Per-record serial number
        zip_code: ZIP code, any formatting
        plus4: ZIP+4 add-on, defaults to "0000"
        delivery_point: Delivery point code, defaults to "00"

    Returns:
        The payload string; 31 digits when the mailer id has 6 or 9 digits

    Example:
        >>> from imbarch.imb import IMBConfig
        >>> encode(IMBConfig(), 1, "90210", "1234", "56")
        '0030012345600000000190210123456'
    """
    barcode_id = _pad_keep_first(config.barcode_id, BARCODE_ID_WIDTH)
    service_type_id = _pad_keep_first(config.service_type_id, SERVICE_TYPE_ID_WIDTH)
    mailer_id = digits_only(config.mailer_id)

    width = serial_width(mailer_id)
    serial = _pad_keep_last(str(sequence_number), width)

    return (
        f"{barcode_id}{service_type_id}{mailer_id}{serial}"
        f"{routing_code(zip_code, plus4, delivery_point)}"
    )


def split_payload(payload: str, *, mailer_id_length: int = 6) -> PayloadFields:
    """
    Split a canonical 31-digit payload into its fields.

    The payload does not record which Mailer ID length was used, so the
    caller supplies it.

    Parameters:
        payload: 31-digit payload as returned by encode()
        mailer_id_length: 6 or 9

    Returns:
        PayloadFields

    Raises:
        ValueError: If the payload is not 31 digits or the length is not 6 or 9
    """
    if mailer_id_length not in (6, 9):
        raise ValueError(f"Mailer ID length must be 6 or 9, got {mailer_id_length}")
    if len(payload) != PAYLOAD_LENGTH or _NON_DIGIT.search(payload):
        raise ValueError(f"Expected a {PAYLOAD_LENGTH}-digit payload, got {payload!r}")

    serial_length = 15 - mailer_id_length
    pos = 0
    parts: list[str] = []
    for width in (
        BARCODE_ID_WIDTH,
        SERVICE_TYPE_ID_WIDTH,
        mailer_id_length,
        serial_length,
        ZIP_WIDTH,
        PLUS4_WIDTH,
        DELIVERY_POINT_WIDTH,
    ):
        parts.append(payload[pos : pos + width])
        pos += width

    return PayloadFields(*parts)
