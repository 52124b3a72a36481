"""Tests for usps_client.logging.context module."""

import asyncio

import pytest

from usps_client.logging.context import (
    LogContext,
    clear_log_context,
    get_log_context,
    set_log_context,
)


class TestLogContext:
    def test_defaults_are_empty(self):
        assert get_log_context() == {"batch_id": "", "operation": "", "request_index": ""}

    def test_set_fields(self):
        set_log_context(batch_id="b1", operation="address", request_index=4)
        assert get_log_context() == {"batch_id": "b1", "operation": "address", "request_index": "4"}

    def test_partial_update_keeps_other_fields(self):
        set_log_context(batch_id="b1", operation="address")
        set_log_context(request_index=0)

        ctx = get_log_context()
        assert ctx["batch_id"] == "b1"
        assert ctx["request_index"] == "0"

    def test_clear(self):
        set_log_context(batch_id="b1")
        clear_log_context()
        assert get_log_context()["batch_id"] == ""

    def test_context_manager_restores(self):
        set_log_context(operation="outer")
        with LogContext(operation="inner", request_index=2):
            assert get_log_context()["operation"] == "inner"
            assert get_log_context()["request_index"] == "2"

        assert get_log_context()["operation"] == "outer"
        assert get_log_context()["request_index"] == ""

    def test_context_manager_restores_on_error(self):
        with pytest.raises(RuntimeError):
            with LogContext(batch_id="b2"):
                raise RuntimeError("fail")
        assert get_log_context()["batch_id"] == ""

    @pytest.mark.asyncio
    async def test_isolated_between_tasks(self):
        async def worker(index):
            with LogContext(request_index=index):
                await asyncio.sleep(0.01)
                return get_log_context()["request_index"]

        assert await asyncio.gather(*(worker(i) for i in range(5))) == ["0", "1", "2", "3", "4"]
