"""Async facade over the blocking google-cloud-bigquery client.

Every blocking call runs in a worker thread via ``asyncio.to_thread``. Query
execution is tied to the request's CancellationToken: once the job has
started, cancelling the token asks BigQuery to cancel the job (best effort).

Example:
    >>> client = BigQueryClient.from_credentials(settings.credentials_info())
    >>> result = await client.execute_query("SELECT 1 AS x", token)
    >>> result["rows"]
    [{'x': 1}]
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from google.cloud import bigquery
from google.oauth2 import service_account

from toolhost.foundation.core import JsonDict
from toolhost.foundation.errors import ErrorCode, ToolException
from toolhost.runtime.observability import get_logger

if TYPE_CHECKING:
    from toolhost.runtime.cancellation import CancellationToken

log = get_logger("toolhost.bigquery")

# BigQuery on-demand pricing: $5 per TiB processed
USD_PER_TIB = 5
_TIB = 1024**4


def estimate_cost(bytes_processed: int | None) -> float:
    return (bytes_processed or 0) / _TIB * USD_PER_TIB


class BigQueryClient:
    """Query execution, dry runs and job inspection.

    Every method raises ToolException carrying the upstream message on failure.
    """

    __slots__ = ("_client", "_cancels")

    def __init__(self, client: bigquery.Client) -> None:
        self._client = client
        self._cancels: set[asyncio.Task[Any]] = set()

    @classmethod
    def from_credentials(cls, info: dict[str, Any]) -> BigQueryClient:
        """Build from a parsed service-account JSON document."""
        credentials = service_account.Credentials.from_service_account_info(info)
        return cls(bigquery.Client(credentials=credentials, project=info.get("project_id")))

    # ─────────────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────────────

    async def execute_query(self, query: str, token: CancellationToken) -> JsonDict:
        """Start a query job and wait for its rows, cancelling the job if the token fires.

        Callers check ``token.is_cancelled`` before calling; this method always
        starts a job.
        """
        tool = "bigquery_execute_query"
        try:
            job = await asyncio.to_thread(self._client.query, query)
        except Exception as e:
            raise ToolException.from_exc(tool, e) from e

        log.debug("query job started", job_id=job.job_id, request_id=token.request_id)
        sub = token.on_cancel(lambda: self._request_cancel(job))
        try:
            if token.is_cancelled:
                raise ToolException.create(tool, "Request was cancelled", ErrorCode.CANCELLED)
            rows = await asyncio.to_thread(_fetch_rows, job)
        except ToolException:
            raise
        except Exception as e:
            raise ToolException.from_exc(tool, e) from e
        finally:
            sub.dispose()
        return {"success": True, "rows": rows, "jobId": job.job_id}

    async def dry_run_query(self, query: str) -> JsonDict:
        config = bigquery.QueryJobConfig(dry_run=True, use_query_cache=False)
        try:
            job = await asyncio.to_thread(self._client.query, query, job_config=config)
        except Exception as e:
            raise ToolException.from_exc("bigquery_dry_run_query", e) from e
        processed = job.total_bytes_processed
        return {
            "success": True,
            "bytesProcessed": processed,
            "costInUSD": estimate_cost(processed),
            "jobId": job.job_id,
        }

    # ─────────────────────────────────────────────────────────────────────────
    # Jobs
    # ─────────────────────────────────────────────────────────────────────────

    async def get_job(self, job_id: str) -> JsonDict:
        try:
            job = await asyncio.to_thread(self._client.get_job, job_id)
        except Exception as e:
            raise ToolException.from_exc("bigquery_get_job", e) from e
        return {
            "success": True,
            "jobId": job.job_id,
            "status": {"state": job.state, "errorResult": job.error_result, "errors": job.errors},
            "statistics": {
                "creationTime": job.created,
                "startTime": job.started,
                "endTime": job.ended,
                "totalBytesProcessed": getattr(job, "total_bytes_processed", None),
                "totalBytesBilled": getattr(job, "total_bytes_billed", None),
                "cacheHit": getattr(job, "cache_hit", None),
                "queryPlan": [_plan_entry(e) for e in getattr(job, "query_plan", None) or ()],
            },
            "configuration": {
                "query": getattr(job, "query", None),
                "destinationTable": _table_ref(getattr(job, "destination", None)),
                "useLegacySql": getattr(job, "use_legacy_sql", None),
            },
        }

    async def cancel_job(self, job_id: str) -> JsonDict:
        try:
            job = await asyncio.to_thread(self._client.cancel_job, job_id)
        except Exception as e:
            raise ToolException.from_exc("bigquery_cancel_job", e) from e
        return {
            "success": True,
            "jobId": job.job_id,
            "status": {"state": job.state, "errorResult": job.error_result},
        }

    async def aclose(self) -> None:
        await asyncio.to_thread(self._client.close)

    # ─────────────────────────────────────────────────────────────────────────
    # Cancellation
    # ─────────────────────────────────────────────────────────────────────────

    def _request_cancel(self, job: bigquery.QueryJob) -> None:
        """Token listener: schedule job.cancel() without awaiting the acknowledgement."""
        log.info("cancelling query job", job_id=job.job_id)
        task = asyncio.get_running_loop().create_task(asyncio.to_thread(job.cancel))
        self._cancels.add(task)
        task.add_done_callback(self._cancel_done)

    def _cancel_done(self, task: asyncio.Task[Any]) -> None:
        self._cancels.discard(task)
        if not task.cancelled() and (exc := task.exception()) is not None:
            log.error("Failed to cancel BigQuery job", error=str(exc))


def _fetch_rows(job: bigquery.QueryJob) -> list[JsonDict]:
    return [dict(row.items()) for row in job.result()]


def _plan_entry(entry: Any) -> JsonDict:
    return {
        "name": entry.name,
        "status": entry.status,
        "recordsRead": entry.records_read,
        "recordsWritten": entry.records_written,
    }


def _table_ref(table: Any) -> JsonDict | None:
    if table is None:
        return None
    return {"projectId": table.project, "datasetId": table.dataset_id, "tableId": table.table_id}
