"""Context variables for structured logging."""

from contextvars import ContextVar, Token

_batch_id: ContextVar[str] = ContextVar("batch_id", default="")
_operation: ContextVar[str] = ContextVar("operation", default="")
_request_index: ContextVar[str] = ContextVar("request_index", default="")

_VARS: dict[str, ContextVar[str]] = {
    "batch_id": _batch_id,
    "operation": _operation,
    "request_index": _request_index,
}


def set_log_context(
    batch_id: str | None = None,
    operation: str | None = None,
    request_index: int | str | None = None,
) -> None:
    if batch_id is not None:
        _batch_id.set(batch_id)
    if operation is not None:
        _operation.set(operation)
    if request_index is not None:
        _request_index.set(str(request_index))


def get_log_context() -> dict[str, str]:
    return {name: var.get() for name, var in _VARS.items()}


def clear_log_context() -> None:
    for var in _VARS.values():
        var.set("")


class LogContext:
    """
    Context manager for temporary log context.

    Usage:
        with LogContext(operation="address", request_index=3):
            # All logs in this block carry operation and request_index
            await client.get_address(request)
    """

    def __init__(
        self,
        batch_id: str | None = None,
        operation: str | None = None,
        request_index: int | str | None = None,
    ):
        self.new_context = {
            "batch_id": batch_id,
            "operation": operation,
            "request_index": None if request_index is None else str(request_index),
        }
        self._tokens: list[tuple[ContextVar[str], Token[str]]] = []

    def __enter__(self) -> "LogContext":
        for key, value in self.new_context.items():
            if value is not None:
                var = _VARS[key]
                self._tokens.append((var, var.set(value)))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)
        return False


__all__ = [
    "LogContext",
    "clear_log_context",
    "get_log_context",
    "set_log_context",
]
