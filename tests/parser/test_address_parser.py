"""
Tests for usps_client.parser.address.

Tests cover:
- Canonical street, secondary, city and region output
- PO boxes, inline and segment secondaries
- Region diagnostics (missing, invalid, unknown state)
- Byte spans into the original input
- Determinism and diagnostic ordering
"""

import pytest

from usps_client.models import AddressRequest, ZIPCodeRequest
from usps_client.parser import (
    CanonicalAddress,
    DiagnosticCode,
    ParsedAddress,
    Severity,
    TextSpan,
    parse,
)
from usps_client.parser.address import looks_like_unit_value


def codes(parsed: ParsedAddress) -> list[str]:
    return [d.code.value for d in parsed.diagnostics]


class TestEndToEnd:
    """Reference scenarios."""

    def test_full_address_with_inline_apartment(self):
        """Directional, suffix and designator are abbreviated; ZIP+4 split off."""
        address, diagnostics = parse(
            "123 North Main Street Apartment 4B, New York, NY 10001-1234"
        )

        assert address == CanonicalAddress(
            street_address="123 N MAIN ST",
            secondary_address="APT 4B",
            city="NEW YORK",
            state="NY",
            zip_code="10001",
            zip_plus4="1234",
        )
        assert diagnostics == ()

    def test_po_box(self):
        """PO Box street yields canonical PO BOX and no secondary."""
        address, diagnostics = parse("PO Box 123, Anytown, NY 12345")

        assert address.street_address == "PO BOX 123"
        assert address.secondary_address == ""
        assert address.city == "ANYTOWN"
        assert address.state == "NY"
        assert address.zip_code == "12345"
        assert address.zip_plus4 == ""
        assert diagnostics == ()

    def test_unknown_state_retained(self):
        """Unrecognized state code is kept and reported once as an error."""
        address, diagnostics = parse("123 Main St, Springfield, ZZ 62704")

        assert address.state == "ZZ"
        assert address.zip_code == "62704"
        assert len(diagnostics) == 1
        assert diagnostics[0].code == DiagnosticCode.UNKNOWN_STATE
        assert diagnostics[0].severity == Severity.ERROR
        assert diagnostics[0].message == 'state abbreviation "ZZ" is not recognized by USPS'
        assert diagnostics[0].span == TextSpan(26, 28)


class TestStreetNormalization:
    """Tests for the street segment."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("P.O. Box 42", "PO BOX 42"),
            ("p o box 7a", "PO BOX 7A"),
            ("POBOX 9", "PO BOX 9"),
            ("PO Boxer 9", "PO BOXER 9"),
        ],
    )
    def test_po_box_variants(self, text, expected):
        """Flexible spacing and dots are accepted."""
        address, _ = parse(f"{text}, Anytown, NY 12345")
        assert address.street_address == expected

    def test_directionals_replaced_anywhere(self):
        """Directional words mid-name are abbreviated too."""
        address, diagnostics = parse("123 East 7th Street, New York, NY 10009")
        assert address.street_address == "123 E 7TH ST"
        assert diagnostics == ()

    def test_directional_with_period(self):
        """Trailing period on a directional is ignored."""
        address, _ = parse("55 W. Elm Avenue, Chicago, IL 60610")
        assert address.street_address == "55 W ELM AVE"

    def test_suffix_only_on_last_token(self):
        """A suffix word that is not last is left as-is."""
        address, _ = parse("10 St Charles Avenue, New Orleans, LA 70130")
        assert address.street_address == "10 ST CHARLES AVE"

    def test_street_named_like_designator_is_preserved(self):
        """SUITE followed by a bare suffix is a street name, not a unit."""
        address, diagnostics = parse("500 Suite St, Springfield, IL 62704")
        assert address.street_address == "500 SUITE ST"
        assert address.secondary_address == ""
        assert diagnostics == ()

    def test_inline_suite(self):
        """Inline suite is peeled off and abbreviated."""
        address, _ = parse("1600 Amphitheatre Parkway Suite 200, Mountain View, CA 94043")
        assert address.street_address == "1600 AMPHITHEATRE PKWY"
        assert address.secondary_address == "STE 200"

    @pytest.mark.parametrize(
        "text,street,secondary",
        [
            ("123 Main St Apt E", "123 MAIN ST", "APT E"),
            ("500 Oak Avenue Unit N", "500 OAK AVE", "UNIT N"),
            ("77 Elm Street Ste SW", "77 ELM ST", "STE SW"),
        ],
    )
    def test_directional_letter_unit(self, text, street, secondary):
        """A lone directional after a designator is a unit, and the suffix before it is normalized."""
        address, diagnostics = parse(f"{text}, Springfield, IL 62704")
        assert address.street_address == street
        assert address.secondary_address == secondary
        assert diagnostics == ()

    def test_multiple_inline_secondaries(self):
        """Several inline secondaries keep their textual order."""
        address, _ = parse("1 Main St Bldg 2 Apt 3, Springfield, IL 62704")
        assert address.street_address == "1 MAIN ST"
        assert address.secondary_address == "BLDG 2 APT 3"

    def test_designator_owns_hash_value(self):
        """'APT #4B' is a single APT secondary."""
        address, diagnostics = parse("123 Main St Apt #4B, Springfield, IL 62704")
        assert address.street_address == "123 MAIN ST"
        assert address.secondary_address == "APT 4B"
        assert diagnostics == ()

    def test_attached_hash_value(self):
        """'STE#200' splits designator and value."""
        address, _ = parse("9 Oak Rd STE#200, Springfield, IL 62704")
        assert address.street_address == "9 OAK RD"
        assert address.secondary_address == "STE 200"

    def test_bare_hash_is_unknown_secondary(self):
        """'#4' is kept as entered with a warning spanning the token."""
        address, diagnostics = parse("123 Main St #4, Springfield, IL 62704")

        assert address.street_address == "123 MAIN ST"
        assert address.secondary_address == "# 4"
        assert codes(ParsedAddress(address, diagnostics)) == ["unknown_secondary"]
        assert diagnostics[0].severity == Severity.WARNING
        assert diagnostics[0].span == TextSpan(12, 14)

    def test_unit_word_value(self):
        """Digit-free unit words such as REAR are accepted as values."""
        address, _ = parse("77 Pine Street Unit Rear, Portland, OR 97201")
        assert address.street_address == "77 PINE ST"
        assert address.secondary_address == "UNIT REAR"


class TestSecondarySegments:
    """Tests for comma-separated secondary segments."""

    def test_secondary_segment(self):
        """A middle segment starting with a designator is a secondary."""
        address, diagnostics = parse("123 Main St, Apt 4, Springfield, IL 62704")
        assert address.secondary_address == "APT 4"
        assert address.city == "SPRINGFIELD"
        assert diagnostics == ()

    def test_hash_segment(self):
        """A middle segment starting with '#' is a secondary."""
        address, diagnostics = parse("123 Main St, #12, Springfield, IL 62704")
        assert address.secondary_address == "# 12"
        assert address.city == "SPRINGFIELD"
        assert [d.code for d in diagnostics] == [DiagnosticCode.UNKNOWN_SECONDARY]

    def test_inline_then_segment_secondary(self):
        """Inline secondaries precede segment secondaries."""
        address, _ = parse("1 Main St Bldg 5, Suite 300, Springfield, IL 62704")
        assert address.secondary_address == "BLDG 5 STE 300"

    def test_designator_with_unit_value_segment(self):
        """Designator outside the keyword list plus a unit value is a secondary."""
        address, _ = parse("1 Main St, Dept 12, Springfield, IL 62704")
        assert address.secondary_address == "DEPT 12"
        assert address.city == "SPRINGFIELD"

    def test_city_starting_with_keyword_letters(self):
        """'Florence' is a city even though it starts with FL."""
        address, _ = parse("1 Main St, Florence, AL 35630")
        assert address.secondary_address == ""
        assert address.city == "FLORENCE"

    def test_multiple_city_segments_joined(self):
        """Non-secondary middle segments are joined into the city."""
        address, _ = parse("1 Main St, Brooklyn, New York, NY 11201")
        assert address.city == "BROOKLYN NEW YORK"


class TestRegionDiagnostics:
    """Tests for the state/ZIP segment."""

    def test_zip_plus4_with_space(self):
        """ZIP+4 may be separated by a space."""
        address, diagnostics = parse("1 Main St, Springfield, IL 62704 1234")
        assert (address.zip_code, address.zip_plus4) == ("62704", "1234")
        assert diagnostics == ()

    def test_lowercase_state(self):
        """Region is uppercased before matching."""
        address, diagnostics = parse("1 Main St, Springfield, il 62704")
        assert address.state == "IL"
        assert diagnostics == ()

    def test_region_without_digits_is_missing(self):
        """A trailing segment with no digits is demoted to the city."""
        address, diagnostics = parse("123 Main St, Springfield, Illinois")

        assert address.city == "SPRINGFIELD ILLINOIS"
        assert (address.state, address.zip_code) == ("", "")
        assert [d.code for d in diagnostics] == [DiagnosticCode.MISSING_STATE_ZIP]
        assert diagnostics[0].span == TextSpan(26, 34)

    def test_region_with_digits_is_invalid(self):
        """A trailing segment with digits that does not match is invalid."""
        _, diagnostics = parse("123 Main St, Springfield, IL 6270")
        assert [d.code for d in diagnostics] == [DiagnosticCode.INVALID_STATE_ZIP]
        assert diagnostics[0].is_error

    @pytest.mark.parametrize("region", ["IL ١٢٣٤٥", "IL ６２７０４"])
    def test_non_ascii_zip_digits_are_invalid(self, region):
        """Only ASCII digits form a ZIP Code."""
        address, diagnostics = parse(f"123 Main St, Springfield, {region}")
        assert address.zip_code == ""
        assert [d.code for d in diagnostics] == [DiagnosticCode.INVALID_STATE_ZIP]

    def test_non_ascii_po_box_number_is_not_a_po_box(self):
        """PO Box numbers are ASCII digits, so the box is not canonicalized."""
        address, _ = parse("P.O. Box ١٢, Anytown, NY 12345")
        assert address.street_address != "PO BOX ١٢"
        assert address.zip_code == "12345"

    def test_military_and_territory_codes(self):
        """Territories and military codes are accepted."""
        for region in ("PR 00901", "AE 09001", "GU 96910"):
            _, diagnostics = parse(f"1 Main St, Somewhere, {region}")
            assert diagnostics == ()


class TestMalformedInput:
    """Parser never raises; problems surface as diagnostics."""

    @pytest.mark.parametrize("text", ["", "   ", "\t\n "])
    def test_empty_input(self, text):
        """Whitespace-only input yields one span-less empty_input error."""
        address, diagnostics = parse(text)
        assert address == CanonicalAddress()
        assert len(diagnostics) == 1
        assert diagnostics[0].code == DiagnosticCode.EMPTY_INPUT
        assert diagnostics[0].span is None

    def test_single_segment(self):
        """One segment: insufficient segments, missing region, missing city."""
        address, diagnostics = parse("123 Main St")

        assert address.street_address == "123 MAIN ST"
        assert codes(ParsedAddress(address, diagnostics)) == [
            "insufficient_segments",
            "missing_state_zip",
            "missing_city",
        ]
        assert diagnostics[0].span == TextSpan(0, 11)
        assert diagnostics[1].span is None
        assert diagnostics[2].severity == Severity.WARNING

    def test_two_segments(self):
        """Two segments still parse street and region best-effort."""
        address, diagnostics = parse("123 Main St, IL 62704")

        assert address.street_address == "123 MAIN ST"
        assert address.state == "IL"
        assert codes(ParsedAddress(address, diagnostics)) == [
            "insufficient_segments",
            "missing_city",
        ]

    def test_empty_street(self):
        """A street made only of a secondary has no primary address."""
        address, diagnostics = parse("Apt 4, Springfield, IL 62704")

        assert address.street_address == ""
        assert address.secondary_address == "APT 4"
        assert [d.code for d in diagnostics] == [DiagnosticCode.EMPTY_STREET]
        assert diagnostics[0].span == TextSpan(0, 5)

    def test_empty_segments_dropped(self):
        """Consecutive commas do not create segments."""
        address, diagnostics = parse("1 Main St,, Springfield,, IL 62704")
        assert address.city == "SPRINGFIELD"
        assert diagnostics == ()


class TestSpans:
    """Spans are byte offsets into the original input."""

    def test_span_survives_whitespace_collapse(self):
        """Collapsed runs of whitespace do not shift spans."""
        _, diagnostics = parse("123 Main St, Springfield,   ZZ 62704")
        assert diagnostics[0].span == TextSpan(28, 30)

    def test_span_counts_utf8_bytes(self):
        """Multi-byte characters before a span count by their UTF-8 length."""
        text = "123 Main St, Señora, ZZ 62704"
        _, diagnostics = parse(text)

        span = diagnostics[0].span
        assert span == TextSpan(22, 24)
        assert text.encode("utf-8")[span.start : span.end] == b"ZZ"


class TestOrderingAndDeterminism:
    """Tests for diagnostic ordering and repeatability."""

    @pytest.mark.parametrize(
        "text",
        [
            "123 North Main Street Apartment 4B, New York, NY 10001-1234",
            "123 Main St #4, #5, Springfield, ZZ 1234",
            "",
            "Apt 4",
            "1 Main St, Springfield, Illinois",
        ],
    )
    def test_parse_is_deterministic(self, text):
        """Two parses of the same input are equal."""
        assert parse(text) == parse(text)

    def test_errors_sorted_before_warnings(self):
        """Errors first, then by code, then span."""
        _, diagnostics = parse("123 Main St #4, #5, Springfield, ZZ 62704")

        assert [d.code.value for d in diagnostics] == [
            "unknown_state",
            "unknown_secondary",
            "unknown_secondary",
        ]
        warnings = diagnostics[1:]
        assert warnings[0].span.start < warnings[1].span.start

    def test_sort_key_is_monotone(self):
        """Every adjacent pair respects the ordering."""
        _, diagnostics = parse("#1, ZZ")
        keys = [
            (
                0 if d.is_error else 1,
                d.code.value,
                d.span.start if d.span else -1,
                d.span.end if d.span else -1,
            )
            for d in diagnostics
        ]
        assert keys == sorted(keys)


class TestCanonicalAddress:
    """Tests for CanonicalAddress conversions."""

    def test_to_address_request(self):
        """Parsed address converts into an AddressRequest."""
        parsed = parse("123 Main St Apt 4, Springfield, IL 62704-1234")
        request = parsed.to_address_request()

        assert isinstance(request, AddressRequest)
        assert request.to_params() == {
            "streetAddress": "123 MAIN ST",
            "secondaryAddress": "APT 4",
            "city": "SPRINGFIELD",
            "state": "IL",
            "ZIPCode": "62704",
            "ZIPPlus4": "1234",
        }

    def test_to_zip_code_request(self):
        """Parsed address converts into a ZIPCodeRequest."""
        address, _ = parse("123 Main St, Springfield, IL 62704")
        request = address.to_zip_code_request()

        assert isinstance(request, ZIPCodeRequest)
        assert request.city == "SPRINGFIELD"
        request.validate_required()

    def test_format_lines(self):
        """Delivery line and last line."""
        address, _ = parse("123 North Main Street Apartment 4B, New York, NY 10001-1234")
        assert address.format_lines() == ["123 N MAIN ST APT 4B", "NEW YORK NY 10001-1234"]

    def test_ok_and_partitions(self):
        """errors/warnings partition diagnostics."""
        parsed = parse("123 Main St #4, Springfield, ZZ 62704")
        assert not parsed.ok
        assert [d.code for d in parsed.errors] == [DiagnosticCode.UNKNOWN_STATE]
        assert [d.code for d in parsed.warnings] == [DiagnosticCode.UNKNOWN_SECONDARY]


class TestLooksLikeUnitValue:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("4B", True),
            ("12", True),
            ("A", True),
            ("ABC", True),
            ("REAR", True),
            ("PENTHOUSE", True),
            ("MAIN", False),
            ("", False),
            ("NORTH WING", False),
        ],
    )
    def test_values(self, value, expected):
        assert looks_like_unit_value(value) is expected
