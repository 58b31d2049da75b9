"""Tests for IMB payload construction."""

import pytest

from imbarch.imb import (
    IMBConfig,
    PAYLOAD_LENGTH,
    digits_only,
    encode,
    routing_code,
    serial_width,
    split_payload,
)


class TestEncode:
    """Tests for encode() function."""

    def test_reference_payload(self):
        """Test the default config against a known payload."""
        config = IMBConfig(barcode_id="00", service_type_id="300", mailer_id="123456")

        payload = encode(config, 1, "90210", "1234", "56")

        assert payload == "00" + "300" + "123456" + "000000001" + "90210" + "1234" + "56"
        assert len(payload) == PAYLOAD_LENGTH

    def test_nine_digit_mailer_id_uses_six_digit_serial(self):
        """Test that a 9-digit MID gets a 6-digit serial and still totals 31."""
        config = IMBConfig(mailer_id="123456789")

        payload = encode(config, 42, "90210", "1234", "56")

        assert payload[5:14] == "123456789"
        assert payload[14:20] == "000042"
        assert len(payload) == 31

    def test_six_digit_mailer_id_uses_nine_digit_serial(self):
        """Test that a 6-digit MID gets a 9-digit serial."""
        payload = encode(IMBConfig(mailer_id="654321"), 42, "90210")

        assert payload[5:11] == "654321"
        assert payload[11:20] == "000000042"

    def test_other_mailer_id_length_falls_back_to_six_digit_serial(self):
        """Test that an invalid MID length is kept as-is with a 6-digit serial."""
        config = IMBConfig(mailer_id="1234567")

        payload = encode(config, 5, "90210", "1234", "56")

        assert payload == "00" + "300" + "1234567" + "000005" + "90210123456"
        assert len(payload) == 2 + 3 + 7 + 6 + 11

    def test_empty_mailer_id(self):
        """Test that a MID with no digits still produces a payload."""
        payload = encode(IMBConfig(mailer_id="abc"), 7, "90210")

        assert payload == "00300" + "000007" + "90210000000"

    def test_mailer_id_non_digits_are_stripped(self):
        """Test that separators in the MID are removed before use."""
        payload = encode(IMBConfig(mailer_id="123-456"), 1, "90210")

        assert payload[5:11] == "123456"
        assert len(payload) == 31

    def test_serial_overflow_keeps_least_significant_digits(self):
        """Test that an over-long sequence number is truncated from the left."""
        config = IMBConfig(mailer_id="123456789")

        payload = encode(config, 1234567, "90210")

        assert payload[14:20] == "234567"

    def test_serial_exact_width_not_truncated(self):
        """Test that a sequence number filling the width is kept intact."""
        payload = encode(IMBConfig(), 999999999, "90210")

        assert payload[11:20] == "999999999"

    def test_barcode_id_overflow_keeps_leading_digits(self):
        """Test that an over-long barcode id is truncated from the right."""
        payload = encode(IMBConfig(barcode_id="12345"), 1, "90210")

        assert payload[:2] == "12"

    def test_barcode_id_is_left_padded(self):
        """Test that a short barcode id is zero-padded."""
        payload = encode(IMBConfig(barcode_id="7"), 1, "90210")

        assert payload[:2] == "07"

    def test_service_type_id_pad_then_slice(self):
        """Test STID padding and right truncation."""
        assert encode(IMBConfig(service_type_id="80"), 1, "90210")[2:5] == "080"
        assert encode(IMBConfig(service_type_id="3001"), 1, "90210")[2:5] == "300"

    def test_missing_plus4_and_delivery_point_default(self):
        """Test that omitted routing parts default to zeros."""
        payload = encode(IMBConfig(), 1, "90210")

        assert payload.endswith("90210" + "0000" + "00")
        assert len(payload) == 31

    def test_none_plus4_and_delivery_point_default(self):
        """Test that None routing parts behave like omitted ones."""
        payload = encode(IMBConfig(), 1, "90210", None, None)

        assert payload.endswith("90210000000")

    def test_only_digits_for_valid_input(self):
        """Test that formatted routing input yields a digits-only payload."""
        config = IMBConfig(mailer_id="123456789")

        payload = encode(config, 3, "9021O-", "12 34", "5-6")

        assert payload.isdigit()

    def test_short_zip_is_padded(self):
        """Test that a short ZIP is left-padded to 5 digits."""
        payload = encode(IMBConfig(), 1, "2134", "1", "5")

        assert payload[20:] == "02134" + "0001" + "05"

    def test_deterministic(self):
        """Test that identical inputs produce identical payloads."""
        config = IMBConfig(mailer_id="123456789")

        assert encode(config, 10, "10001", "0001", "01") == encode(
            config, 10, "10001", "0001", "01"
        )


class TestFieldHelpers:
    """Tests for digits_only(), serial_width() and routing_code()."""

    def test_digits_only_strips_everything_else(self):
        assert digits_only("90210-1234") == "902101234"
        assert digits_only("") == ""
        assert digits_only(None) == ""

    def test_digits_only_ignores_non_ascii_digits(self):
        """Test that only ASCII digits survive."""
        assert digits_only("١٢٣45") == "45"

    @pytest.mark.parametrize(
        "mailer_id,expected",
        [("123456", 9), ("123456789", 6), ("", 6), ("1234567", 6), ("12345", 6)],
    )
    def test_serial_width(self, mailer_id, expected):
        assert serial_width(mailer_id) == expected

    def test_routing_code_is_eleven_digits(self):
        assert routing_code("90210", "1234", "56") == "90210123456"
        assert len(routing_code("1", "2", "3")) == 11

    def test_config_serial_width(self):
        """Test that the config exposes the width the encoder will use."""
        assert IMBConfig(mailer_id="123456").serial_width == 9
        assert IMBConfig(mailer_id="123456789").serial_width == 6
        assert IMBConfig(mailer_id="12-34").serial_width == 6


class TestSplitPayload:
    """Tests for split_payload() function."""

    def test_split_six_digit_mailer_payload(self):
        """Test splitting a payload built with a 6-digit MID."""
        payload = encode(IMBConfig(barcode_id="01", mailer_id="123456"), 77, "90210", "1234", "56")

        fields = split_payload(payload, mailer_id_length=6)

        assert fields.barcode_id == "01"
        assert fields.service_type_id == "300"
        assert fields.mailer_id == "123456"
        assert fields.serial_number == "000000077"
        assert fields.zip == "90210"
        assert fields.plus4 == "1234"
        assert fields.delivery_point == "56"
        assert fields.routing_code == "90210123456"

    def test_split_nine_digit_mailer_payload(self):
        """Test splitting a payload built with a 9-digit MID."""
        payload = encode(IMBConfig(mailer_id="987654321"), 12, "10001")

        fields = split_payload(payload, mailer_id_length=9)

        assert fields.mailer_id == "987654321"
        assert fields.serial_number == "000012"

    def test_split_rejects_wrong_length(self):
        with pytest.raises(ValueError):
            split_payload("123")

    def test_split_rejects_bad_mailer_length(self):
        with pytest.raises(ValueError):
            split_payload("0" * 31, mailer_id_length=7)
