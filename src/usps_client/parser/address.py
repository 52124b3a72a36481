"""
Free-form address parser.

Turns user-entered text such as "123 North Main Street Apt 4B, New York, NY 10001"
into a canonical USPS-style record plus a sorted list of diagnostics. Parsing is
pure and deterministic and never raises: every problem is reported as a
Diagnostic on the result.

Pipeline:
    1. Collapse whitespace. Empty input stops here with empty_input.
    2. Split on commas. Fewer than three segments reports insufficient_segments.
    3. Assign segments: first is the street, last is state/ZIP when it matches,
       middle segments are secondary units or city parts.
    4. Normalize the street: PO boxes, inline secondaries peeled from the right,
       directionals everywhere, suffix on the last token.
    5. Join secondaries, city parts and split the state/ZIP segment.
"""

import re
from dataclasses import dataclass
from typing import NamedTuple

from usps_client.models.requests import AddressRequest, ZIPCodeRequest
from usps_client.parser import lexicon
from usps_client.parser.diagnostics import (
    Diagnostic,
    DiagnosticCode,
    Severity,
    TextSpan,
    sort_diagnostics,
)

PO_BOX_PATTERN = re.compile(r"^P\.?\s*O\.?\s*BOX\s+([0-9]+[A-Z0-9]*)$", re.IGNORECASE | re.ASCII)
STATE_ZIP_PATTERN = re.compile(r"^([A-Z]{2})\s+([0-9]{5})(?:[-\s]([0-9]{4}))?$", re.ASCII)

_SEGMENT_PATTERN = re.compile(r"[^,]+")
_TOKEN_PATTERN = re.compile(r"\S+")
_DESIGNATOR_SEPARATORS = ("#", "-")


@dataclass(frozen=True)
class CanonicalAddress:
    """USPS-standardized address. All fields are uppercase strings, empty when absent."""

    firm: str = ""
    street_address: str = ""
    secondary_address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    zip_plus4: str = ""
    urbanization: str = ""

    def to_address_request(self) -> AddressRequest:
        return AddressRequest(
            firm=self.firm,
            street_address=self.street_address,
            secondary_address=self.secondary_address,
            city=self.city,
            state=self.state,
            urbanization=self.urbanization,
            zip_code=self.zip_code,
            zip_plus4=self.zip_plus4,
        )

    def to_zip_code_request(self) -> ZIPCodeRequest:
        return ZIPCodeRequest(
            firm=self.firm,
            street_address=self.street_address,
            secondary_address=self.secondary_address,
            city=self.city,
            state=self.state,
            zip_code=self.zip_code,
            zip_plus4=self.zip_plus4,
        )

    def format_lines(self) -> list[str]:
        """Mailing label lines: firm, delivery line, last line."""
        lines = []
        if self.firm:
            lines.append(self.firm)
        if self.urbanization:
            lines.append(f"URB {self.urbanization}")
        delivery = " ".join(p for p in (self.street_address, self.secondary_address) if p)
        if delivery:
            lines.append(delivery)
        zip_full = f"{self.zip_code}-{self.zip_plus4}" if self.zip_plus4 else self.zip_code
        last_line = " ".join(p for p in (self.city, self.state, zip_full) if p)
        if last_line:
            lines.append(last_line)
        return lines

    def to_dict(self) -> dict[str, str]:
        return {
            "firm": self.firm,
            "streetAddress": self.street_address,
            "secondaryAddress": self.secondary_address,
            "city": self.city,
            "state": self.state,
            "ZIPCode": self.zip_code,
            "ZIPPlus4": self.zip_plus4,
            "urbanization": self.urbanization,
        }


class ParsedAddress(NamedTuple):
    """Result of parse(): unpacks as (address, diagnostics)."""

    address: CanonicalAddress
    diagnostics: tuple[Diagnostic, ...]

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.WARNING]

    @property
    def ok(self) -> bool:
        """True when no error diagnostics were produced."""
        return not self.errors

    def to_address_request(self) -> AddressRequest:
        return self.address.to_address_request()


@dataclass(frozen=True)
class _Piece:
    """Slice of the normalized input. start/end index the normalized string."""

    text: str
    start: int
    end: int


@dataclass(frozen=True)
class _Secondary:
    designator: str
    value: str
    known: bool
    start: int
    end: int

    def render(self) -> str:
        return f"{self.designator} {self.value}" if self.value else self.designator


class _Source:
    """Normalized input plus the mapping back to byte offsets of the original."""

    def __init__(self, original: str):
        self.original = original
        chars: list[str] = []
        char_index: list[int] = []
        pending_space = False
        for i, ch in enumerate(original):
            if ch.isspace():
                pending_space = bool(chars)
                continue
            if pending_space:
                chars.append(" ")
                char_index.append(i - 1)
                pending_space = False
            chars.append(ch)
            char_index.append(i)
        self.text = "".join(chars)
        self._char_index = char_index

        byte_offsets = [0]
        for ch in original:
            byte_offsets.append(byte_offsets[-1] + len(ch.encode("utf-8")))
        self._byte_offsets = byte_offsets

    def span(self, start: int, end: int) -> TextSpan:
        """Byte span of the original text covering normalized [start, end)."""
        if end <= start:
            if start < len(self._char_index):
                offset = self._byte_offsets[self._char_index[start]]
            else:
                offset = self._byte_offsets[-1]
            return TextSpan(offset, offset)
        first = self._char_index[start]
        last = self._char_index[end - 1]
        return TextSpan(self._byte_offsets[first], self._byte_offsets[last + 1])


def parse(text: str) -> ParsedAddress:
    """
    Parse a free-form address string.

    Args:
        text: Any text, e.g. "123 Main St, Springfield, IL 62704"

    Returns:
        ParsedAddress(address, diagnostics) with diagnostics sorted errors first,
        then by code, span start and span end.
    """
    return _Parser(text).run()


class _Parser:
    def __init__(self, text: str):
        self.source = _Source(text)
        self.diagnostics: list[Diagnostic] = []

    def report(
        self,
        severity: Severity,
        code: DiagnosticCode,
        message: str,
        piece: _Piece | None = None,
        start: int | None = None,
        end: int | None = None,
    ) -> None:
        span = None
        if piece is not None:
            span = self.source.span(piece.start, piece.end)
        elif start is not None and end is not None:
            span = self.source.span(start, end)
        self.diagnostics.append(Diagnostic(severity, code, message, span))

    def run(self) -> ParsedAddress:
        text = self.source.text
        if not text:
            self.report(Severity.ERROR, DiagnosticCode.EMPTY_INPUT, "address input is empty")
            return ParsedAddress(CanonicalAddress(), sort_diagnostics(self.diagnostics))

        segments = _split_segments(text)
        if len(segments) < 3:
            self.report(
                Severity.ERROR,
                DiagnosticCode.INSUFFICIENT_SEGMENTS,
                "expected street, city, and state segments separated by commas",
                start=0,
                end=len(text),
            )

        street_segment = segments[0] if segments else None
        region_segment: _Piece | None = None
        demoted_region: _Piece | None = None
        middle = segments[1:]
        if len(segments) >= 2:
            last = segments[-1]
            middle = segments[1:-1]
            if STATE_ZIP_PATTERN.match(last.text.upper()):
                region_segment = last
            else:
                demoted_region = last

        secondary_segments: list[_Piece] = []
        city_segments: list[_Piece] = []
        for segment in middle:
            if _is_secondary_segment(segment.text):
                secondary_segments.append(segment)
            else:
                city_segments.append(segment)
        if demoted_region is not None:
            city_segments.append(demoted_region)

        street, inline_secondaries = self.normalize_street(street_segment)
        segment_secondaries = [self.normalize_secondary_segment(s) for s in secondary_segments]
        secondaries = inline_secondaries + segment_secondaries
        for secondary in secondaries:
            if not secondary.known:
                self.report(
                    Severity.WARNING,
                    DiagnosticCode.UNKNOWN_SECONDARY,
                    f'secondary unit designator "{secondary.designator}" is not a USPS '
                    "standard abbreviation; kept as entered",
                    start=secondary.start,
                    end=secondary.end,
                )
        secondary_address = " ".join(s.render() for s in secondaries)

        city = self.normalize_city(city_segments)
        state, zip_code, zip_plus4 = self.normalize_region(region_segment, demoted_region)

        address = CanonicalAddress(
            street_address=street,
            secondary_address=secondary_address,
            city=city,
            state=state,
            zip_code=zip_code,
            zip_plus4=zip_plus4,
        )
        return ParsedAddress(address, sort_diagnostics(self.diagnostics))

    def normalize_street(self, segment: _Piece | None) -> tuple[str, list[_Secondary]]:
        if segment is None:
            self.report(
                Severity.ERROR, DiagnosticCode.MISSING_STREET, "street address segment is missing"
            )
            return "", []

        upper = segment.text.upper()
        po_box = PO_BOX_PATTERN.match(upper)
        if po_box:
            return f"PO BOX {po_box.group(1).upper()}", []

        tokens = [
            _Piece(m.group().upper(), segment.start + m.start(), segment.start + m.end())
            for m in _TOKEN_PATTERN.finditer(segment.text)
        ]
        primary, secondaries = _peel_inline_secondaries(tokens)

        words = []
        for i, token in enumerate(primary):
            directional = lexicon.normalize_directional(token.text)
            if directional:
                words.append(directional)
                continue
            if i == len(primary) - 1:
                suffix = lexicon.normalize_suffix(token.text)
                if suffix:
                    words.append(suffix)
                    continue
            words.append(token.text)

        street = " ".join(words)
        if not street:
            self.report(
                Severity.ERROR,
                DiagnosticCode.EMPTY_STREET,
                "could not determine primary street address",
                piece=segment,
            )
        return street, secondaries

    def normalize_secondary_segment(self, segment: _Piece) -> _Secondary:
        clean = segment.text.upper().replace(".", "")
        parts = clean.split()
        split = _split_designator(parts[0]) if parts else None
        if split is None:
            return _Secondary(clean, "", False, segment.start, segment.end)
        designator, attached = split
        value = _clean_unit_value(" ".join([attached, *parts[1:]]))
        return _make_secondary(designator, value, segment.start, segment.end)

    def normalize_city(self, segments: list[_Piece]) -> str:
        if not segments:
            self.report(
                Severity.WARNING,
                DiagnosticCode.MISSING_CITY,
                "city component missing; USPS Publication 28 requires a city or "
                "acceptable city name",
            )
            return ""
        return " ".join(s.text for s in segments).upper()

    def normalize_region(
        self, segment: _Piece | None, demoted: _Piece | None
    ) -> tuple[str, str, str]:
        if segment is None:
            if demoted is not None and any(ch.isdigit() for ch in demoted.text):
                self.report(
                    Severity.ERROR,
                    DiagnosticCode.INVALID_STATE_ZIP,
                    "expected two-letter state abbreviation followed by ZIP Code",
                    piece=demoted,
                )
            elif demoted is not None:
                self.report(
                    Severity.ERROR,
                    DiagnosticCode.MISSING_STATE_ZIP,
                    "state and ZIP Code are required after the city",
                    piece=demoted,
                )
            else:
                self.report(
                    Severity.ERROR,
                    DiagnosticCode.MISSING_STATE_ZIP,
                    "state and ZIP segment missing",
                )
            return "", "", ""

        match = STATE_ZIP_PATTERN.match(segment.text.upper())
        state, zip_code, zip_plus4 = match.group(1), match.group(2), match.group(3) or ""
        if not lexicon.is_valid_state(state):
            self.report(
                Severity.ERROR,
                DiagnosticCode.UNKNOWN_STATE,
                f'state abbreviation "{state}" is not recognized by USPS',
                start=segment.start,
                end=segment.start + 2,
            )
        return state, zip_code, zip_plus4


def _split_segments(text: str) -> list[_Piece]:
    segments = []
    for match in _SEGMENT_PATTERN.finditer(text):
        raw = match.group()
        stripped = raw.strip()
        if not stripped:
            continue
        start = match.start() + (len(raw) - len(raw.lstrip()))
        segments.append(_Piece(stripped, start, start + len(stripped)))
    return segments


def _is_secondary_segment(text: str) -> bool:
    clean = text.upper().replace(".", "")
    if clean.startswith("#"):
        return True
    for keyword in lexicon.SEGMENT_DESIGNATOR_KEYWORDS:
        if clean == keyword or any(clean.startswith(keyword + sep) for sep in (" ", "-", "#")):
            return True
    parts = clean.split(None, 1)
    return (
        len(parts) == 2
        and lexicon.normalize_designator(parts[0]) is not None
        and looks_like_unit_value(parts[1])
    )


def looks_like_unit_value(value: str) -> bool:
    """Digits anywhere, a single short token, or a digit-free unit word such as REAR."""
    value = value.strip()
    if not value:
        return False
    if any(ch.isdigit() for ch in value):
        return True
    tokens = value.split()
    if len(tokens) == 1 and len(tokens[0]) <= 3:
        return True
    return value in lexicon.UNIT_VALUE_WORDS


def _looks_like_inline_unit(value: str) -> bool:
    # "123 SUITE ST" is a street named Suite, not unit ST; "APT E" is unit E
    tokens = value.split()
    if len(tokens) == 1 and lexicon.normalize_suffix(tokens[0]):
        return False
    return looks_like_unit_value(value)


def _split_designator(token: str) -> tuple[str, str] | None:
    """
    Split a token into (designator, attached value) if it introduces a secondary.

    "APT" -> ("APT", ""), "STE#200" -> ("STE", "200"), "#7" -> ("#", "7").
    """
    if token.startswith(lexicon.UNKNOWN_DESIGNATOR):
        return lexicon.UNKNOWN_DESIGNATOR, token[1:]
    for sep in _DESIGNATOR_SEPARATORS:
        if sep in token:
            head, tail = token.split(sep, 1)
            if lexicon.normalize_designator(head):
                return head.rstrip("."), tail
    if lexicon.normalize_designator(token):
        return token.rstrip("."), ""
    return None


def _clean_unit_value(value: str) -> str:
    return value.strip().lstrip("#-. ").strip()


def _make_secondary(designator: str, value: str, start: int, end: int) -> _Secondary:
    abbreviation = lexicon.normalize_designator(designator)
    if abbreviation is None:
        return _Secondary(designator, value, False, start, end)
    return _Secondary(abbreviation, value, True, start, end)


def _peel_inline_secondaries(tokens: list[_Piece]) -> tuple[list[_Piece], list[_Secondary]]:
    """Repeatedly split the right-most designator + unit value off the street tokens."""
    primary = list(tokens)
    peeled: list[_Secondary] = []
    while True:
        found = _find_rightmost_secondary(primary)
        if found is None:
            break
        index, secondary = found
        peeled.insert(0, secondary)
        primary = primary[:index]
    return primary, peeled


def _find_rightmost_secondary(tokens: list[_Piece]) -> tuple[int, _Secondary] | None:
    for i in range(len(tokens) - 1, -1, -1):
        split = _split_designator(tokens[i].text)
        if split is None:
            continue
        designator, attached = split
        rest = [t.text for t in tokens[i + 1 :]]
        value = " ".join(p for p in [attached, *rest] if p)
        if not _looks_like_inline_unit(value):
            continue

        # "APT #4B": the named designator owns the "#" value
        if designator == lexicon.UNKNOWN_DESIGNATOR and i > 0:
            previous = _split_designator(tokens[i - 1].text)
            if previous is not None and previous[0] != designator and not previous[1]:
                i -= 1
                designator = previous[0]

        secondary = _make_secondary(
            designator, _clean_unit_value(value), tokens[i].start, tokens[-1].end
        )
        return i, secondary
    return None


__all__ = [
    "CanonicalAddress",
    "ParsedAddress",
    "looks_like_unit_value",
    "parse",
]
