"""
Free-form address parsing.

Usage:
    from usps_client.parser import parse

    address, diagnostics = parse("123 Main St Apt 4, Springfield, IL 62704")
"""

from usps_client.parser.address import CanonicalAddress, ParsedAddress, parse
from usps_client.parser.diagnostics import Diagnostic, DiagnosticCode, Severity, TextSpan

__all__ = [
    "CanonicalAddress",
    "Diagnostic",
    "DiagnosticCode",
    "ParsedAddress",
    "Severity",
    "TextSpan",
    "parse",
]
