"""BigQuery tools: execute, dry run, inspect and cancel jobs."""

from __future__ import annotations

import orjson

from toolhost.foundation.core import Failure, FunctionTool, JsonDict, Success, tool
from toolhost.runtime.cancellation import CancellationToken

from .client import BigQueryClient


def render(payload: JsonDict) -> Success:
    """Single text block holding the payload as JSON. Timestamps become ISO strings."""
    return Success.text(orjson.dumps(payload, default=str).decode())


def build_tools(client: BigQueryClient) -> tuple[FunctionTool, ...]:
    """Tool handlers bound to one client, in catalog order."""

    @tool(
        "bigquery_execute_query",
        "Execute a BigQuery SQL query",
        properties={"query": {"type": "string", "description": "The SQL query to execute"}},
        required=["query"],
    )
    async def execute_query(arguments: JsonDict, token: CancellationToken) -> Success | Failure:
        if token.is_cancelled:
            return Failure.cancelled()
        return render(await client.execute_query(arguments["query"], token))

    @tool(
        "bigquery_dry_run_query",
        "Perform a dry run of a BigQuery SQL query to estimate cost",
        properties={"query": {"type": "string", "description": "The SQL query to dry run"}},
        required=["query"],
    )
    async def dry_run_query(arguments: JsonDict, token: CancellationToken) -> Success:
        return render(await client.dry_run_query(arguments["query"]))

    @tool(
        "bigquery_get_job",
        "Get detailed information about a BigQuery job including status, statistics, and configuration",
        properties={"jobId": {"type": "string", "description": "The BigQuery job ID to look up"}},
        required=["jobId"],
    )
    async def get_job(arguments: JsonDict, token: CancellationToken) -> Success:
        return render(await client.get_job(arguments["jobId"]))

    @tool(
        "bigquery_cancel_job",
        "Cancel a running BigQuery job",
        properties={"jobId": {"type": "string", "description": "The BigQuery job ID to cancel"}},
        required=["jobId"],
    )
    async def cancel_job(arguments: JsonDict, token: CancellationToken) -> Success:
        return render(await client.cancel_job(arguments["jobId"]))

    return execute_query, dry_run_query, get_job, cancel_job
