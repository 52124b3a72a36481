"""Request, response and error-envelope schemas for the address endpoints."""

from usps_client.models.errors import ErrorDetail, ErrorInfo, ErrorMessage, ErrorSource
from usps_client.models.requests import AddressRequest, CityStateRequest, ZIPCodeRequest
from usps_client.models.responses import (
    AddressAdditionalInfo,
    AddressCorrection,
    AddressMatch,
    AddressResponse,
    CityStateResponse,
    DomesticAddress,
    ZIPCodeResponse,
)

__all__ = [
    "AddressAdditionalInfo",
    "AddressCorrection",
    "AddressMatch",
    "AddressRequest",
    "AddressResponse",
    "CityStateRequest",
    "CityStateResponse",
    "DomesticAddress",
    "ErrorDetail",
    "ErrorInfo",
    "ErrorMessage",
    "ErrorSource",
    "ZIPCodeRequest",
    "ZIPCodeResponse",
]
