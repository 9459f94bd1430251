"""
Higher level helpers composing the execution, query, table and custom endpoints
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from deprecated import deprecated

from dune_sdk.api.base import MAX_NUM_ROWS_PER_BATCH
from dune_sdk.api.custom import CustomAPI
from dune_sdk.api.execution import ExecutionAPI
from dune_sdk.api.query import QueryAPI
from dune_sdk.api.table import TableAPI
from dune_sdk.models import (
    ExecutionResultCSV,
    ExecutionState,
    QueryFailedError,
    ResultsResponse,
)
from dune_sdk.util import age_in_hours

if TYPE_CHECKING:
    from dune_sdk.types import ExecutionPerformance, QueryParameter

# This is the expiry time on old query results.
THREE_MONTHS_IN_HOURS = 2191
# Seconds between checking execution status
POLL_FREQUENCY_SECONDS = 1


class ExtendedAPI(ExecutionAPI, QueryAPI, TableAPI, CustomAPI):
    """
    Provides higher level helper methods for faster
    and easier development on top of the base ExecutionAPI.
    """

    def run_query(
        self,
        query_id: int,
        query_parameters: list[QueryParameter] | None = None,
        ping_frequency: float = POLL_FREQUENCY_SECONDS,
        performance: ExecutionPerformance | str | None = None,
        batch_size: int | None = None,
        columns: list[str] | None = None,
        sample_count: int | None = None,
        filters: str | None = None,
        sort_by: list[str] | None = None,
    ) -> ResultsResponse:
        """
        Executes `query_id`, waits until execution completes,
        fetches and returns all pages of the results.
        Sleeps `ping_frequency` seconds between each status request.
        """
        self._validate_sampling(sample_count, batch_size, filters)
        limit = None if sample_count is not None else batch_size or MAX_NUM_ROWS_PER_BATCH

        execution_id = self._refresh(query_id, query_parameters, ping_frequency, performance)
        return self._fetch_entire_result(
            self.get_execution_results(
                execution_id,
                limit=limit,
                columns=columns,
                sample_count=sample_count,
                filters=filters,
                sort_by=sort_by,
            )
        )

    def run_query_csv(
        self,
        query_id: int,
        query_parameters: list[QueryParameter] | None = None,
        ping_frequency: float = POLL_FREQUENCY_SECONDS,
        performance: ExecutionPerformance | str | None = None,
        batch_size: int | None = None,
        columns: list[str] | None = None,
        sample_count: int | None = None,
        filters: str | None = None,
        sort_by: list[str] | None = None,
    ) -> ExecutionResultCSV:
        """
        Executes `query_id`, waits till execution completes
        and returns all the results in CSV format
        """
        self._validate_sampling(sample_count, batch_size, filters)
        limit = None if sample_count is not None else batch_size or MAX_NUM_ROWS_PER_BATCH

        execution_id = self._refresh(query_id, query_parameters, ping_frequency, performance)
        return self._fetch_entire_result_csv(
            self.get_result_csv(
                execution_id,
                limit=limit,
                columns=columns,
                sample_count=sample_count,
                filters=filters,
                sort_by=sort_by,
            )
        )

    def get_latest_result(
        self,
        query_id: int,
        query_parameters: list[QueryParameter] | None = None,
        max_age_hours: float = THREE_MONTHS_IN_HOURS,
        batch_size: int | None = None,
        columns: list[str] | None = None,
        sample_count: int | None = None,
        filters: str | None = None,
        sort_by: list[str] | None = None,
    ) -> ResultsResponse:
        """
        GET the latest results for a query_id without re-executing the query
        (doesn't use execution credits). Re-runs the query when the latest
        results are older than `max_age_hours`.
        https://docs.dune.com/api-reference/executions/endpoint/get-query-result
        """
        self._validate_sampling(sample_count, batch_size, filters)

        # A single row is enough to tell how fresh the latest results are
        metadata = self.get_last_execution_results(query_id, query_parameters, limit=1)
        last_run = metadata.times.execution_ended_at
        if sample_count is None and batch_size is None:
            batch_size = MAX_NUM_ROWS_PER_BATCH

        if last_run is not None and age_in_hours(last_run) > max_age_hours:
            self.logger.info(
                f"results (from {last_run}) older than {max_age_hours} hours, re-running query"
            )
            return self.run_query(
                query_id,
                query_parameters,
                batch_size=batch_size,
                columns=columns,
                sample_count=sample_count,
                filters=filters,
                sort_by=sort_by,
            )
        return self._fetch_entire_result(
            self.get_execution_results(
                metadata.execution_id,
                limit=batch_size,
                columns=columns,
                sample_count=sample_count,
                filters=filters,
                sort_by=sort_by,
            )
        )

    def download_csv(
        self,
        query_id: int,
        query_parameters: list[QueryParameter] | None = None,
        batch_size: int | None = None,
        columns: list[str] | None = None,
        sample_count: int | None = None,
        filters: str | None = None,
        sort_by: list[str] | None = None,
    ) -> ExecutionResultCSV:
        """
        All of the latest results of `query_id` in CSV format, without executing it.
        https://docs.dune.com/api-reference/executions/endpoint/get-query-result-csv
        """
        self._validate_sampling(sample_count, batch_size, filters)
        if sample_count is None and batch_size is None:
            batch_size = MAX_NUM_ROWS_PER_BATCH

        return self._fetch_entire_result_csv(
            self.get_last_result_csv(
                query_id,
                query_parameters,
                limit=batch_size,
                columns=columns,
                sample_count=sample_count,
                filters=filters,
                sort_by=sort_by,
            )
        )

    ##############################################################################################
    # Plus Features: these features use APIs that are only available on paid subscription plans
    ##############################################################################################

    def run_sql(
        self,
        query_sql: str,
        params: list[QueryParameter] | None = None,
        is_private: bool = True,
        archive_after: bool = True,
        performance: ExecutionPerformance | str | None = None,
        ping_frequency: float = POLL_FREQUENCY_SECONDS,
        name: str = "API Query",
    ) -> ResultsResponse:
        """
        Creates a query from `query_sql`, runs it and returns the results.
        The query is archived afterwards unless `archive_after` is False.

        Requires Plus subscription!
        """
        query_id = self.create_query(name, query_sql, params, is_private)
        try:
            return self.run_query(
                query_id, params, ping_frequency=ping_frequency, performance=performance
            )
        finally:
            if archive_after:
                self.archive_query(query_id)

    ######################
    # Deprecated Functions
    ######################
    @deprecated(version="0.1.0", reason="Please use run_query")
    def refresh(
        self,
        query_id: int,
        query_parameters: list[QueryParameter] | None = None,
        ping_frequency: float = POLL_FREQUENCY_SECONDS,
        performance: ExecutionPerformance | str | None = None,
    ) -> ResultsResponse:
        """
        Executes `query_id`, waits until execution completes,
        fetches and returns the results.
        """
        return self.run_query(query_id, query_parameters, ping_frequency, performance)

    #################
    # Private Methods
    #################
    def _refresh(
        self,
        query_id: int,
        query_parameters: list[QueryParameter] | None = None,
        ping_frequency: float = POLL_FREQUENCY_SECONDS,
        performance: ExecutionPerformance | str | None = None,
    ) -> str:
        """
        Executes `query_id` and polls its status until it reaches a terminal state.
        Returns the execution id.
        """
        execution_id = self.execute_query(query_id, query_parameters, performance).execution_id
        status = self.get_execution_status(execution_id)
        while status.state not in ExecutionState.terminal_states():
            self.logger.info(f"waiting for query execution {execution_id} to complete: {status}")
            time.sleep(ping_frequency)
            status = self.get_execution_status(execution_id)
        if status.state == ExecutionState.PARTIAL:
            self.logger.warning("Partial result set retrieved.")
        if status.state == ExecutionState.FAILED:
            # a status body carrying `error` has already raised DuneError
            self.logger.error(status)
            raise QueryFailedError(f"query execution {execution_id} failed")
        return execution_id

    def _fetch_entire_result(self, results: ResultsResponse) -> ResultsResponse:
        """
        Follows `next_uri` until every page is appended to `results`
        """
        next_uri = results.next_uri
        while next_uri is not None:
            batch = self._get_results_by_url(next_uri)
            results += batch
            next_uri = batch.next_uri
        return results

    def _fetch_entire_result_csv(self, results: ExecutionResultCSV) -> ExecutionResultCSV:
        """
        Follows `next_uri` until every CSV page is appended to `results`
        """
        next_uri = results.next_uri
        while next_uri is not None:
            batch = self._get_result_csv_by_url(next_uri)
            results += batch
            next_uri = batch.next_uri
        return results
