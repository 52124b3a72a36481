"""
Tests for usps_client.bulk.

Tests cover:
- One result per input, in input order, with exactly one of response/error
- Rate limiting across a batch (10 requests at 5 req/s)
- Retry of transient failures and immediate failure on permanent ones
- Concurrency bound
- Progress callback: one call per input, monotone counts, callback errors logged
- Cancellation before and during a batch
"""

import asyncio
import logging
import time

import pytest

from usps_client.bulk import BulkConfig, BulkProcessor, BulkResult
from usps_client.cancellation import CancelScope
from usps_client.client import USPSClient
from usps_client.errors import APIError, CancellationError, ValidationError
from usps_client.models import AddressRequest, CityStateRequest, ZIPCodeRequest
from usps_client.oauth2 import StaticTokenProvider


@pytest.fixture
def client(fake_transport):
    return USPSClient(StaticTokenProvider("bulk-token"), transport=fake_transport)


def address_requests(n: int) -> list[AddressRequest]:
    return [AddressRequest(street_address=f"{i} Main St", state="NY") for i in range(n)]


def fast_config(**overrides) -> BulkConfig:
    settings = {"max_concurrency": 10, "requests_per_second": 1000, "max_retries": 2, "retry_backoff": 0.01}
    settings.update(overrides)
    return BulkConfig(**settings)


class TestBulkConfig:
    def test_defaults(self):
        config = BulkConfig()
        assert config.max_concurrency == 10
        assert config.requests_per_second == 10
        assert config.max_retries == 3
        assert config.retry_backoff == 1.0
        assert config.progress_callback is None

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_concurrency": 0},
            {"requests_per_second": 0},
            {"max_retries": -1},
            {"retry_backoff": 0},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            BulkConfig(**kwargs)

    def test_processor_shares_rate_limiter_across_batches(self, client):
        processor = BulkProcessor(client, BulkConfig(requests_per_second=7))
        assert processor.rate_limiter.config.requests_per_second == 7
        assert processor.retry_config.max_retries == 3


class TestBulkResults:
    """Cardinality, ordering and response/error exclusivity."""

    @pytest.mark.asyncio
    async def test_empty_input(self, client, fake_transport):
        processor = BulkProcessor(client, fast_config())
        assert await processor.process_addresses([]) == []
        assert fake_transport.requests == []

    @pytest.mark.asyncio
    async def test_results_in_input_order(self, client, fake_transport, make_json_response, get_query_params):
        """Later inputs finishing first must not reorder results."""
        requests = address_requests(8)

        async def handler(request):
            street = get_query_params(request)["streetAddress"]
            number = int(street.split()[0])
            await asyncio.sleep(0.01 * (8 - number))
            return make_json_response(200, {"address": {"streetAddress": street.upper()}})

        fake_transport.handler = handler
        processor = BulkProcessor(client, fast_config())

        results = await processor.process_addresses(requests)

        assert len(results) == 8
        for i, result in enumerate(results):
            assert isinstance(result, BulkResult)
            assert result.index == i
            assert result.request is requests[i]
            assert result.ok
            assert result.error is None
            assert result.response.address.street_address == f"{i} MAIN ST"

    @pytest.mark.asyncio
    async def test_failures_isolated(self, client, fake_transport, make_json_response, get_query_params):
        """One failing input does not fail the batch."""

        def handler(request):
            if get_query_params(request)["streetAddress"].startswith("2 "):
                return make_json_response(400, {"error": {"message": "Address Not Found."}})
            return make_json_response(200, {"address": {"city": "NEW YORK"}})

        fake_transport.handler = handler
        processor = BulkProcessor(client, fast_config())

        results = await processor.process_addresses(address_requests(4))

        assert [r.ok for r in results] == [True, True, False, True]
        for result in results:
            assert (result.response is None) != (result.error is None)
        assert isinstance(results[2].error, APIError)
        assert results[2].error.status_code == 400

    @pytest.mark.asyncio
    async def test_invalid_request_recorded_without_io(self, client, fake_transport, make_json_response):
        fake_transport.route("/address", make_json_response(200, {}))
        processor = BulkProcessor(client, fast_config())

        results = await processor.process_addresses(
            [AddressRequest(street_address="1 Main St"), AddressRequest(street_address="2 Main St", state="NY")]
        )

        assert isinstance(results[0].error, ValidationError)
        assert results[1].ok
        assert len(fake_transport.requests) == 1

    @pytest.mark.asyncio
    async def test_city_state_and_zip_code_batches(self, client, fake_transport, make_json_response):
        fake_transport.route("/city-state", make_json_response(200, {"city": "NEW YORK", "state": "NY"}))
        fake_transport.route("/zipcode", make_json_response(200, {"address": {"ZIPCode": "10001"}}))
        processor = BulkProcessor(client, fast_config())

        city_states = await processor.process_city_states(
            [CityStateRequest(zip_code="10001"), CityStateRequest(zip_code="10002")]
        )
        zip_codes = await processor.process_zip_codes(
            [ZIPCodeRequest(street_address="1 Main St", city="New York", state="NY")]
        )

        assert [r.response.city for r in city_states] == ["NEW YORK", "NEW YORK"]
        assert zip_codes[0].response.address.zip_code == "10001"
        assert len(fake_transport.calls("/city-state")) == 2
        assert len(fake_transport.calls("/zipcode")) == 1


class TestBulkRetry:
    """Transient errors are retried, permanent ones are not."""

    @pytest.mark.asyncio
    async def test_transient_errors_retried(self, client, fake_transport, make_json_response, address_payload):
        fake_transport.route(
            "/address",
            make_json_response(500, {}),
            make_json_response(500, {}),
            make_json_response(200, address_payload),
        )
        processor = BulkProcessor(client, fast_config(max_retries=2))

        results = await processor.process_addresses(address_requests(1))

        assert results[0].ok
        assert results[0].response.address.zip_code == "62704"
        assert len(fake_transport.requests) == 3

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, client, fake_transport, make_json_response):
        fake_transport.route("/address", make_json_response(503, {}))
        processor = BulkProcessor(client, fast_config(max_retries=2))

        results = await processor.process_addresses(address_requests(1))

        assert isinstance(results[0].error, APIError)
        assert results[0].error.status_code == 503
        assert len(fake_transport.requests) == 3

    @pytest.mark.asyncio
    async def test_permanent_error_not_retried(self, client, fake_transport, make_json_response):
        fake_transport.route("/address", make_json_response(400, {"error": {"message": "bad"}}))
        processor = BulkProcessor(client, fast_config(max_retries=2))

        results = await processor.process_addresses(address_requests(1))

        assert isinstance(results[0].error, APIError)
        assert results[0].error.status_code == 400
        assert len(fake_transport.requests) == 1


class TestBulkPacing:
    @pytest.mark.asyncio
    async def test_rate_limit_paces_batch(self, client, fake_transport, make_json_response):
        """10 requests at 5 req/s: 5 go immediately, the rest wait for refills."""
        fake_transport.route("/address", make_json_response(200, {}))
        calls = []
        processor = BulkProcessor(
            client,
            BulkConfig(
                requests_per_second=5,
                progress_callback=lambda done, total, err: calls.append((done, total, err)),
            ),
        )

        start = time.monotonic()
        results = await processor.process_addresses(address_requests(10))
        elapsed = time.monotonic() - start

        assert elapsed >= 0.9
        assert len(results) == 10
        assert all(r.ok for r in results)
        assert len(calls) == 10

    @pytest.mark.asyncio
    async def test_concurrency_bound(self, client, fake_transport, make_json_response):
        in_flight = 0
        peak = 0

        async def handler(request):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return make_json_response(200, {})

        fake_transport.handler = handler
        processor = BulkProcessor(client, fast_config(max_concurrency=3))

        results = await processor.process_addresses(address_requests(12))

        assert all(r.ok for r in results)
        assert 1 <= peak <= 3


class TestBulkProgress:
    @pytest.mark.asyncio
    async def test_progress_counts(self, client, fake_transport, make_json_response, get_query_params):
        def handler(request):
            if get_query_params(request)["streetAddress"].startswith("1 "):
                return make_json_response(404, {})
            return make_json_response(200, {})

        fake_transport.handler = handler
        calls = []
        processor = BulkProcessor(
            client,
            fast_config(progress_callback=lambda done, total, err: calls.append((done, total, err))),
        )

        await processor.process_addresses(address_requests(5))

        assert [done for done, _, _ in calls] == [1, 2, 3, 4, 5]
        assert {total for _, total, _ in calls} == {5}
        errors = [err for _, _, err in calls if err is not None]
        assert len(errors) == 1
        assert isinstance(errors[0], APIError)

    @pytest.mark.asyncio
    async def test_callback_error_logged(self, client, fake_transport, make_json_response, caplog):
        fake_transport.route("/address", make_json_response(200, {}))

        def broken_callback(done, total, err):
            raise RuntimeError("callback exploded")

        processor = BulkProcessor(client, fast_config(progress_callback=broken_callback))

        with caplog.at_level(logging.WARNING, logger="usps_client.bulk"):
            results = await processor.process_addresses(address_requests(2))

        assert all(r.ok for r in results)
        warnings = [r for r in caplog.records if "progress callback" in r.getMessage()]
        assert len(warnings) == 2
        assert warnings[0].callback_error == "callback exploded"


class TestBulkCancellation:
    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, client, fake_transport, make_json_response):
        fake_transport.route("/address", make_json_response(200, {}))
        calls = []
        processor = BulkProcessor(
            client,
            fast_config(progress_callback=lambda done, total, err: calls.append(done)),
        )
        scope = CancelScope()
        scope.cancel()

        results = await processor.process_addresses(address_requests(4), scope)

        assert len(results) == 4
        assert all(isinstance(r.error, CancellationError) for r in results)
        assert all(r.response is None for r in results)
        assert fake_transport.requests == []
        assert calls == [1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_cancelled_mid_batch(self, client, fake_transport, make_json_response):
        """In-flight and queued requests end with CancellationError; no new requests start."""
        fake_transport.route("/address", make_json_response(200, {}))
        fake_transport.delay = 0.05
        processor = BulkProcessor(client, fast_config(max_concurrency=1))
        scope = CancelScope()

        asyncio.get_running_loop().call_later(0.12, scope.cancel)
        results = await processor.process_addresses(address_requests(10), scope)

        assert len(results) == 10
        for result in results:
            assert (result.response is None) != (result.error is None)
        cancelled = [r for r in results if isinstance(r.error, CancellationError)]
        succeeded = [r for r in results if r.ok]
        assert cancelled
        assert 1 <= len(succeeded) < 10
        assert len(fake_transport.requests) <= len(succeeded) + 1

    @pytest.mark.asyncio
    async def test_deadline(self, client, fake_transport, make_json_response):
        fake_transport.route("/address", make_json_response(200, {}))
        fake_transport.delay = 1.0
        processor = BulkProcessor(client, fast_config())

        start = time.monotonic()
        results = await processor.process_addresses(address_requests(3), CancelScope(timeout=0.05))

        assert time.monotonic() - start < 0.9
        assert all(isinstance(r.error, CancellationError) for r in results)
        assert all(r.error.deadline_exceeded for r in results)
