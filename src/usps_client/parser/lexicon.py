"""
USPS Publication 28 lookup tables used by the address parser.

All tables are process-lifetime constants keyed by uppercase input words.
"""

# Street suffixes, Pub 28 Appendix C1. Applied to the final street token only.
STREET_SUFFIXES: dict[str, str] = {
    "ALLEY": "ALY", "ALLEE": "ALY", "ALLY": "ALY", "ALY": "ALY",
    "AVENUE": "AVE", "AV": "AVE", "AVEN": "AVE", "AVENU": "AVE", "AVN": "AVE", "AVNUE": "AVE",
    "AVE": "AVE",
    "BOULEVARD": "BLVD", "BLVD": "BLVD", "BOUL": "BLVD", "BOULV": "BLVD",
    "CIRCLE": "CIR", "CIR": "CIR", "CIRC": "CIR", "CIRCL": "CIR", "CRCL": "CIR", "CRCLE": "CIR",
    "COURT": "CT", "CT": "CT", "CRT": "CT",
    "DRIVE": "DR", "DR": "DR", "DRIV": "DR", "DRV": "DR",
    "EXPRESSWAY": "EXPY", "EXPY": "EXPY", "EXP": "EXPY", "EXPR": "EXPY", "EXPRESS": "EXPY",
    "EXPW": "EXPY",
    "HIGHWAY": "HWY", "HWY": "HWY", "HIGHWY": "HWY", "HIWAY": "HWY", "HIWY": "HWY", "HWAY": "HWY",
    "LANE": "LN", "LN": "LN", "LANES": "LN",
    "PARKWAY": "PKWY", "PKWY": "PKWY", "PARKWY": "PKWY", "PKY": "PKWY", "PKWAY": "PKWY",
    "PLACE": "PL", "PL": "PL",
    "PLAZA": "PLZ", "PLZ": "PLZ", "PLZA": "PLZ",
    "ROAD": "RD", "RD": "RD",
    "SQUARE": "SQ", "SQ": "SQ", "SQR": "SQ", "SQRE": "SQ", "SQU": "SQ",
    "STREET": "ST", "ST": "ST", "STR": "ST", "STRT": "ST", "STEET": "ST",
    "TERRACE": "TER", "TER": "TER", "TERR": "TER",
    "TRAIL": "TRL", "TRL": "TRL", "TRAILS": "TRL", "TRK": "TRL",
    "TURNPIKE": "TPKE", "TPKE": "TPKE", "TRNPK": "TPKE", "TURNPK": "TPKE",
    "WAY": "WAY",
}  # fmt: skip

# Directionals, Pub 28 Appendix C2. Applied anywhere in the street.
DIRECTIONALS: dict[str, str] = {
    "NORTH": "N", "N": "N",
    "SOUTH": "S", "S": "S",
    "EAST": "E", "E": "E",
    "WEST": "W", "W": "W",
    "NORTHEAST": "NE", "NE": "NE",
    "NORTHWEST": "NW", "NW": "NW",
    "SOUTHEAST": "SE", "SE": "SE",
    "SOUTHWEST": "SW", "SW": "SW",
}  # fmt: skip

# Secondary unit designators, Pub 28 Appendix C2.
SECONDARY_DESIGNATORS: dict[str, str] = {
    "APARTMENT": "APT", "APT": "APT", "APTMT": "APT",
    "BASEMENT": "BSMT", "BSMT": "BSMT",
    "BUILDING": "BLDG", "BLDG": "BLDG", "BLD": "BLDG",
    "DEPARTMENT": "DEPT", "DEPT": "DEPT",
    "FLOOR": "FL", "FL": "FL", "FLR": "FL",
    "FRONT": "FRNT", "FRNT": "FRNT",
    "HANGER": "HNGR", "HNGR": "HNGR",
    "KEY": "KEY",
    "LOBBY": "LBBY", "LBBY": "LBBY",
    "LOT": "LOT",
    "LOWER": "LOWR", "LOWR": "LOWR",
    "OFFICE": "OFC", "OFC": "OFC",
    "PENTHOUSE": "PH", "PH": "PH",
    "PIER": "PIER",
    "REAR": "REAR",
    "ROOM": "RM", "RM": "RM",
    "SIDE": "SIDE",
    "SLIP": "SLIP",
    "SPACE": "SPC", "SPC": "SPC",
    "STOP": "STOP",
    "SUITE": "STE", "STE": "STE", "SUIT": "STE",
    "TRAILER": "TRLR", "TRLR": "TRLR",
    "UNIT": "UNIT",
    "UPPER": "UPPR", "UPPR": "UPPR",
}  # fmt: skip

# Keywords that mark a whole comma-separated segment as a secondary address.
SEGMENT_DESIGNATOR_KEYWORDS: tuple[str, ...] = (
    "APT", "APARTMENT",
    "UNIT", "SUITE", "STE",
    "ROOM", "RM",
    "FLOOR", "FL",
    "BLDG", "BUILDING",
    "LOT",
)  # fmt: skip

# Unit values that carry no digits but are still valid after a designator.
UNIT_VALUE_WORDS: frozenset[str] = frozenset(
    {"PH", "PENTHOUSE", "REAR", "FRONT", "UPPER", "LOWER", "BSMT", "BASEMENT", "LOBBY"}
)

# States, DC, territories and military codes accepted by USPS.
STATE_CODES: frozenset[str] = frozenset(
    {
        "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "DC", "FL",
        "GA", "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME",
        "MD", "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH",
        "NJ", "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI",
        "SC", "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI",
        "WY", "PR", "VI", "GU", "AS", "MP",
        # Military
        "AA", "AE", "AP",
    }
)  # fmt: skip

UNKNOWN_DESIGNATOR = "#"


def normalize_suffix(word: str) -> str | None:
    return STREET_SUFFIXES.get(word.rstrip("."))


def normalize_directional(word: str) -> str | None:
    return DIRECTIONALS.get(word.rstrip("."))


def normalize_designator(word: str) -> str | None:
    """USPS abbreviation for a secondary designator, or None if not in the table."""
    return SECONDARY_DESIGNATORS.get(word.rstrip("."))


def is_valid_state(code: str) -> bool:
    return code in STATE_CODES


__all__ = [
    "DIRECTIONALS",
    "SECONDARY_DESIGNATORS",
    "SEGMENT_DESIGNATOR_KEYWORDS",
    "STATE_CODES",
    "STREET_SUFFIXES",
    "UNIT_VALUE_WORDS",
    "UNKNOWN_DESIGNATOR",
    "is_valid_state",
    "normalize_designator",
    "normalize_directional",
    "normalize_suffix",
]
