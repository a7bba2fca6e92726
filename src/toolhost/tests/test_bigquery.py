"""Tests for the BigQuery service, including the job cancellation bridge."""

from __future__ import annotations

import asyncio

import orjson
import pytest

from toolhost import CancellationToken, Dispatcher, Failure, InvocationRequest, Success
from toolhost.foundation.config import BigQuerySettings
from toolhost.runtime.cancellation import Subscription
from toolhost.services.bigquery import BigQueryClient, build_registry, estimate_cost

from .fakes import FakeBigQuery, FakeJob

CREDENTIALS = '{"type": "service_account", "project_id": "proj"}'


def _dispatcher(fake: FakeBigQuery) -> Dispatcher:
    settings = BigQuerySettings(credentials=CREDENTIALS)
    return Dispatcher(build_registry(settings, client=BigQueryClient(fake)))  # type: ignore[arg-type]


async def _call(dispatcher: Dispatcher, name: str, arguments: dict[str, object] | None,
                token: CancellationToken | None = None) -> Success | Failure:
    return await dispatcher.handle(InvocationRequest(tool_name=name, arguments=arguments), token or CancellationToken())


def _payload(result: Success | Failure) -> dict[str, object]:
    assert isinstance(result, Success)
    return orjson.loads(result.content[0].text)


async def _wait_until_waiting(job: FakeJob) -> None:
    assert await asyncio.to_thread(job.waiting.wait, 5)


class TestCatalog:
    def test_tool_order(self, fake_bigquery: FakeBigQuery) -> None:
        names = [d.name for d in _dispatcher(fake_bigquery).registry.list()]
        assert names == [
            "bigquery_execute_query", "bigquery_dry_run_query", "bigquery_get_job", "bigquery_cancel_job",
        ]

    def test_cost_is_five_dollars_per_tib(self) -> None:
        assert estimate_cost(1024**4) == 5.0
        assert estimate_cost(None) == 0.0


class TestExecuteQuery:
    @pytest.mark.asyncio
    async def test_missing_query(self, fake_bigquery: FakeBigQuery) -> None:
        result = await _call(_dispatcher(fake_bigquery), "bigquery_execute_query", {})
        assert isinstance(result, Failure)
        assert result.content[0].text == '{"error":"Missing required argument: query"}'
        assert fake_bigquery.queries == []

    @pytest.mark.asyncio
    async def test_rows_and_job_id(self) -> None:
        fake = FakeBigQuery(FakeJob("job-a", rows=[{"x": 1}, {"x": 2}]))
        result = await _call(_dispatcher(fake), "bigquery_execute_query", {"query": "SELECT x"})
        assert _payload(result) == {"success": True, "rows": [{"x": 1}, {"x": 2}], "jobId": "job-a"}
        assert fake.queries[0][0] == "SELECT x"

    @pytest.mark.asyncio
    async def test_upstream_error_becomes_failure(self) -> None:
        fake = FakeBigQuery(FakeJob("job-a", error=ValueError("Syntax error: Unexpected end of script")))
        result = await _call(_dispatcher(fake), "bigquery_execute_query", {"query": "SELECT"})
        assert isinstance(result, Failure)
        assert result.error_message == "Syntax error: Unexpected end of script"

    @pytest.mark.asyncio
    async def test_cancelled_before_start_never_queries(self, fake_bigquery: FakeBigQuery) -> None:
        token = CancellationToken()
        token.cancel()
        result = await _call(_dispatcher(fake_bigquery), "bigquery_execute_query", {"query": "SELECT 1"}, token)
        assert isinstance(result, Failure)
        assert result.error_message == "Request was cancelled"
        assert fake_bigquery.queries == []

    @pytest.mark.asyncio
    async def test_cancel_after_start_cancels_job_once(self, monkeypatch: pytest.MonkeyPatch) -> None:
        disposals: list[Subscription] = []
        original = Subscription.dispose

        def spy(self: Subscription) -> None:
            disposals.append(self)
            original(self)

        monkeypatch.setattr(Subscription, "dispose", spy)
        job = FakeJob("job-a", block=True)
        token = CancellationToken()
        call = asyncio.create_task(
            _call(_dispatcher(FakeBigQuery(job)), "bigquery_execute_query", {"query": "SELECT 1"}, token)
        )
        await _wait_until_waiting(job)
        token.cancel()
        token.cancel()
        result = await asyncio.wait_for(call, 5)

        assert isinstance(result, Failure)
        assert "cancelled" in result.error_message
        assert job.cancel_calls == 1
        assert len(disposals) == 1
        assert token.listener_count == 0

    @pytest.mark.asyncio
    async def test_listener_disposed_on_success(self) -> None:
        token = CancellationToken()
        result = await _call(_dispatcher(FakeBigQuery(FakeJob("job-a"))), "bigquery_execute_query",
                             {"query": "SELECT 1"}, token)
        assert isinstance(result, Success)
        assert token.listener_count == 0
        token.cancel()  # late cancel must not reach the finished job

    @pytest.mark.asyncio
    async def test_concurrent_requests_cancel_independently(self) -> None:
        first, second = FakeJob("job-1", block=True), FakeJob("job-2", rows=[{"n": 2}], block=True)
        dispatcher = _dispatcher(FakeBigQuery(first, second))
        t1, t2 = CancellationToken(), CancellationToken()

        call1 = asyncio.create_task(_call(dispatcher, "bigquery_execute_query", {"query": "q1"}, t1))
        await _wait_until_waiting(first)
        call2 = asyncio.create_task(_call(dispatcher, "bigquery_execute_query", {"query": "q2"}, t2))
        await _wait_until_waiting(second)

        t1.cancel()
        assert isinstance(await asyncio.wait_for(call1, 5), Failure)
        assert second.cancel_calls == 0

        second.release()
        assert _payload(await asyncio.wait_for(call2, 5))["rows"] == [{"n": 2}]
        assert first.cancel_calls == 1
        assert not t2.is_cancelled


class TestDryRun:
    @pytest.mark.asyncio
    async def test_reports_bytes_and_cost(self) -> None:
        fake = FakeBigQuery(FakeJob("dry-1", total_bytes_processed=2 * 1024**4))
        payload = _payload(await _call(_dispatcher(fake), "bigquery_dry_run_query", {"query": "SELECT *"}))
        assert payload == {"success": True, "bytesProcessed": 2 * 1024**4, "costInUSD": 10.0, "jobId": "dry-1"}
        config = fake.queries[0][1]
        assert config.dry_run is True


class TestJobs:
    @pytest.mark.asyncio
    async def test_get_job(self, fake_bigquery: FakeBigQuery) -> None:
        payload = _payload(await _call(_dispatcher(fake_bigquery), "bigquery_get_job", {"jobId": "job-9"}))
        assert payload["jobId"] == "job-9"
        assert payload["status"] == {"state": "DONE", "errorResult": None, "errors": None}
        assert payload["statistics"]["totalBytesProcessed"] == 2048
        assert payload["statistics"]["queryPlan"] == [
            {"name": "S00: Input", "status": "COMPLETE", "recordsRead": 3, "recordsWritten": 3},
        ]
        assert payload["configuration"]["destinationTable"] == {
            "projectId": "proj", "datasetId": "_anon", "tableId": "anon123",
        }

    @pytest.mark.asyncio
    async def test_get_job_not_found(self, fake_bigquery: FakeBigQuery) -> None:
        result = await _call(_dispatcher(fake_bigquery), "bigquery_get_job", {"jobId": "missing"})
        assert isinstance(result, Failure)
        assert result.error_message == "Not found: Job proj:US.missing"

    @pytest.mark.asyncio
    async def test_cancel_job(self, fake_bigquery: FakeBigQuery) -> None:
        payload = _payload(await _call(_dispatcher(fake_bigquery), "bigquery_cancel_job", {"jobId": "job-3"}))
        assert payload == {"success": True, "jobId": "job-3", "status": {"state": "DONE", "errorResult": {"reason": "stopped"}}}
        assert fake_bigquery.cancelled == ["job-3"]

    @pytest.mark.asyncio
    async def test_job_id_required(self, fake_bigquery: FakeBigQuery) -> None:
        result = await _call(_dispatcher(fake_bigquery), "bigquery_cancel_job", {"jobId": ""})
        assert isinstance(result, Failure)
        assert result.error_message == "Missing required argument: jobId"

    @pytest.mark.asyncio
    async def test_registry_closes_client(self, fake_bigquery: FakeBigQuery) -> None:
        settings = BigQuerySettings(credentials=CREDENTIALS)
        await build_registry(settings, client=BigQueryClient(fake_bigquery)).aclose()  # type: ignore[arg-type]
        assert fake_bigquery.closed
