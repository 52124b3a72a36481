"""
Request schemas for the three address endpoints.

Field aliases match the service's query parameter names. Models are
populated by Python field name or alias.
"""

import re
from typing import ClassVar

from pydantic import BaseModel, Field

from usps_client.errors import ValidationError

_ZIP5 = re.compile(r"^\d{5}$")


class _QueryModel(BaseModel):
    model_config = {"populate_by_name": True, "frozen": True}

    required_fields: ClassVar[tuple[str, ...]] = ()

    def validate_required(self) -> None:
        """
        Check required fields before any I/O.

        Raises:
            ValidationError: If a required field is empty
        """
        missing = [
            type(self).model_fields[name].alias or name
            for name in self.required_fields
            if not getattr(self, name)
        ]
        if missing:
            raise ValidationError(
                f"{type(self).__name__} missing required field(s): {', '.join(missing)}",
                context={"missing_fields": missing},
            )

    def to_params(self) -> dict[str, str]:
        """Query parameters for the non-empty fields, keyed by wire name."""
        return {key: value for key, value in self.model_dump(by_alias=True).items() if value}


class AddressRequest(_QueryModel):
    """Parameters for GET /address (standardize an address)."""

    required_fields: ClassVar[tuple[str, ...]] = ("street_address", "state")

    firm: str = Field(default="", description="Firm/business name")
    street_address: str = Field(default="", alias="streetAddress", description="Primary street")
    secondary_address: str = Field(
        default="", alias="secondaryAddress", description="Apartment, suite, unit"
    )
    city: str = Field(default="")
    state: str = Field(default="", description="Two-letter state code")
    urbanization: str = Field(default="", description="Puerto Rico urbanization name")
    zip_code: str = Field(default="", alias="ZIPCode")
    zip_plus4: str = Field(default="", alias="ZIPPlus4")


class CityStateRequest(_QueryModel):
    """Parameters for GET /city-state (ZIP to city/state)."""

    required_fields: ClassVar[tuple[str, ...]] = ("zip_code",)

    zip_code: str = Field(default="", alias="ZIPCode")

    def validate_required(self) -> None:
        super().validate_required()
        if not _ZIP5.match(self.zip_code):
            raise ValidationError(
                f"ZIPCode must be 5 digits, got {self.zip_code!r}",
                context={"field": "ZIPCode"},
            )


class ZIPCodeRequest(_QueryModel):
    """Parameters for GET /zipcode (address to ZIP)."""

    required_fields: ClassVar[tuple[str, ...]] = ("street_address", "city", "state")

    firm: str = Field(default="")
    street_address: str = Field(default="", alias="streetAddress")
    secondary_address: str = Field(default="", alias="secondaryAddress")
    city: str = Field(default="")
    state: str = Field(default="")
    zip_code: str = Field(default="", alias="ZIPCode")
    zip_plus4: str = Field(default="", alias="ZIPPlus4")


__all__ = [
    "AddressRequest",
    "CityStateRequest",
    "ZIPCodeRequest",
]
