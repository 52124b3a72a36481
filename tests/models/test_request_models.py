"""Tests for request, response and error-envelope schemas."""

import pytest

from usps_client.errors import ValidationError
from usps_client.models import (
    AddressRequest,
    AddressResponse,
    CityStateRequest,
    ErrorMessage,
    ZIPCodeRequest,
    ZIPCodeResponse,
)


class TestRequests:
    def test_populate_by_alias_or_name(self):
        by_name = AddressRequest(street_address="1 Main St", state="NY", zip_code="10001")
        by_alias = AddressRequest(streetAddress="1 Main St", state="NY", ZIPCode="10001")
        assert by_name == by_alias

    def test_to_params_skips_empty(self):
        request = AddressRequest(street_address="1 Main St", state="NY", zip_plus4="1234")
        assert request.to_params() == {"streetAddress": "1 Main St", "state": "NY", "ZIPPlus4": "1234"}

    def test_frozen(self):
        request = CityStateRequest(zip_code="10001")
        with pytest.raises(Exception):
            request.zip_code = "10002"

    @pytest.mark.parametrize(
        "request_obj, missing",
        [
            (AddressRequest(), ["streetAddress", "state"]),
            (AddressRequest(street_address="1 Main St"), ["state"]),
            (ZIPCodeRequest(street_address="1 Main St", state="NY"), ["city"]),
            (CityStateRequest(), ["ZIPCode"]),
        ],
    )
    def test_missing_required_fields(self, request_obj, missing):
        with pytest.raises(ValidationError) as exc_info:
            request_obj.validate_required()
        assert exc_info.value.context["missing_fields"] == missing

    def test_required_fields_present(self):
        AddressRequest(street_address="1 Main St", state="NY").validate_required()
        ZIPCodeRequest(street_address="1 Main St", city="Albany", state="NY").validate_required()
        CityStateRequest(zip_code="12207").validate_required()


class TestResponses:
    def test_address_response_aliases(self, address_payload):
        response = AddressResponse.model_validate(address_payload)

        assert response.address.zip_code == "62704"
        assert response.additional_info.carrier_route == "C001"
        assert response.additional_info.dpv_cmra == "N"
        assert response.corrections == []
        assert response.warnings == []

    def test_unknown_fields_ignored(self):
        response = ZIPCodeResponse.model_validate({"address": {"ZIPCode": "10001", "newField": 1}, "extra": True})
        assert response.address.zip_code == "10001"

    def test_dump_by_alias(self, address_payload):
        dumped = AddressResponse.model_validate(address_payload).model_dump(by_alias=True, exclude_none=True)
        assert dumped["additionalInfo"]["DPVConfirmation"] == "Y"


class TestErrorEnvelope:
    def test_full_envelope(self):
        envelope = ErrorMessage.model_validate(
            {
                "apiVersion": "3.0.0",
                "error": {
                    "code": "400",
                    "message": "Invalid request",
                    "errors": [
                        {
                            "status": "400",
                            "code": "010001",
                            "title": "Missing state",
                            "detail": "state is required",
                            "source": {"parameter": "state", "example": "NY"},
                        }
                    ],
                },
            }
        )

        assert envelope.api_version == "3.0.0"
        assert envelope.error.message == "Invalid request"
        assert envelope.error.errors[0].source.parameter == "state"

    def test_minimal_envelope(self):
        envelope = ErrorMessage.model_validate({})
        assert envelope.error is None
