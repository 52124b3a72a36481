"""Standard error envelope returned by the resource endpoints on HTTP >= 400."""

from pydantic import BaseModel, Field

_ENVELOPE_CONFIG = {"populate_by_name": True, "extra": "ignore"}


class ErrorSource(BaseModel):
    model_config = _ENVELOPE_CONFIG

    parameter: str | None = None
    example: str | None = None


class ErrorDetail(BaseModel):
    model_config = _ENVELOPE_CONFIG

    status: str | None = None
    code: str | None = None
    title: str | None = None
    detail: str | None = None
    source: ErrorSource | None = None


class ErrorInfo(BaseModel):
    model_config = _ENVELOPE_CONFIG

    code: str | None = None
    message: str | None = None
    errors: list[ErrorDetail] = Field(default_factory=list)


class ErrorMessage(BaseModel):
    """{apiVersion?, error: {code?, message?, errors: [...]}}"""

    model_config = _ENVELOPE_CONFIG

    api_version: str | None = Field(default=None, alias="apiVersion")
    error: ErrorInfo | None = None


__all__ = [
    "ErrorDetail",
    "ErrorInfo",
    "ErrorMessage",
    "ErrorSource",
]
