"""Response schemas for the three address endpoints."""

from pydantic import BaseModel, Field

_RESPONSE_CONFIG = {"populate_by_name": True, "extra": "ignore"}


class DomesticAddress(BaseModel):
    """Standardized U.S. address as returned by the service."""

    model_config = _RESPONSE_CONFIG

    street_address: str | None = Field(default=None, alias="streetAddress")
    street_address_abbreviation: str | None = Field(
        default=None, alias="streetAddressAbbreviation"
    )
    secondary_address: str | None = Field(default=None, alias="secondaryAddress")
    city_abbreviation: str | None = Field(default=None, alias="cityAbbreviation")
    city: str | None = None
    state: str | None = None
    zip_code: str | None = Field(default=None, alias="ZIPCode")
    zip_plus4: str | None = Field(default=None, alias="ZIPPlus4")
    urbanization: str | None = None


class AddressAdditionalInfo(BaseModel):
    """Delivery point and DPV details for a standardized address."""

    model_config = _RESPONSE_CONFIG

    delivery_point: str | None = Field(default=None, alias="deliveryPoint")
    carrier_route: str | None = Field(default=None, alias="carrierRoute")
    dpv_confirmation: str | None = Field(
        default=None, alias="DPVConfirmation", description="Y, D, S or N"
    )
    dpv_cmra: str | None = Field(default=None, alias="DPVCMRA")
    business: str | None = None
    central_delivery_point: str | None = Field(default=None, alias="centralDeliveryPoint")
    vacant: str | None = None


class AddressCorrection(BaseModel):
    model_config = _RESPONSE_CONFIG

    code: str | None = None
    text: str | None = None


class AddressMatch(BaseModel):
    model_config = _RESPONSE_CONFIG

    code: str | None = None
    text: str | None = None


class AddressResponse(BaseModel):
    """Payload of GET /address."""

    model_config = _RESPONSE_CONFIG

    firm: str | None = None
    address: DomesticAddress | None = None
    additional_info: AddressAdditionalInfo | None = Field(default=None, alias="additionalInfo")
    corrections: list[AddressCorrection] = Field(default_factory=list)
    matches: list[AddressMatch] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class CityStateResponse(BaseModel):
    """Payload of GET /city-state."""

    model_config = _RESPONSE_CONFIG

    city: str | None = None
    state: str | None = None
    zip_code: str | None = Field(default=None, alias="ZIPCode")


class ZIPCodeResponse(BaseModel):
    """Payload of GET /zipcode."""

    model_config = _RESPONSE_CONFIG

    firm: str | None = None
    address: DomesticAddress | None = None


__all__ = [
    "AddressAdditionalInfo",
    "AddressCorrection",
    "AddressMatch",
    "AddressResponse",
    "CityStateResponse",
    "DomesticAddress",
    "ZIPCodeResponse",
]
