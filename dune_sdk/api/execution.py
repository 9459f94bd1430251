"""
Implementation of all Dune API query execution and get results routes.

Further Documentation:
    execution: https://docs.dune.com/api-reference/executions/endpoint/execute-query
    get results: https://docs.dune.com/api-reference/executions/endpoint/get-execution-result
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from dune_sdk.api.base import DUNE_CSV_NEXT_OFFSET_HEADER, DUNE_CSV_NEXT_URI_HEADER
from dune_sdk.api.router import Router
from dune_sdk.models import (
    ExecutionResponse,
    ExecutionResultCSV,
    ExecutionState,
    ExecutionStatusResponse,
    ResponseShapeError,
    ResultsResponse,
)
from dune_sdk.types import ExecutionPerformance, QueryParameter, parameter_values

if TYPE_CHECKING:
    from requests import Response


class ExecutionAPI(Router):
    """
    Query execution and result fetching functions.
    """

    def execute_query(
        self,
        query_id: int,
        query_parameters: list[QueryParameter] | None = None,
        performance: ExecutionPerformance | str | None = None,
    ) -> ExecutionResponse:
        """Post's to Dune API for execute `query_id`"""
        tier = self._performance(performance, self.performance)
        params = {
            "query_parameters": parameter_values(query_parameters),
            "performance": tier,
        }
        self.logger.info(f"executing {query_id} on {tier} cluster")
        response_json = self._post(route=f"query/{query_id}/execute", params=params)
        try:
            return ExecutionResponse.from_dict(response_json)
        except KeyError as err:
            raise ResponseShapeError(response_json, "ExecutionResponse", err) from err

    def cancel_execution(self, execution_id: str) -> bool:
        """POST Execution Cancellation to Dune API for `execution_id`"""
        response_json = self._post(route=f"execution/{execution_id}/cancel")
        try:
            # No need to make a dataclass for this since it's just a boolean.
            success: bool = response_json["success"]
        except KeyError as err:
            raise ResponseShapeError(response_json, "CancellationResponse", err) from err
        return success

    def get_execution_status(self, execution_id: str) -> ExecutionStatusResponse:
        """GET status from Dune API for `execution_id`"""
        response_json = self._get(route=f"execution/{execution_id}/status")
        try:
            return ExecutionStatusResponse.from_dict(response_json)
        except KeyError as err:
            raise ResponseShapeError(response_json, "ExecutionStatusResponse", err) from err

    def get_execution_results(
        self,
        execution_id: str,
        limit: int | None = None,
        offset: int | None = None,
        columns: list[str] | None = None,
        sample_count: int | None = None,
        filters: str | None = None,
        sort_by: list[str] | None = None,
        allow_partial_results: str | None = None,
    ) -> ResultsResponse:
        """GET a page of results from Dune API for `execution_id`"""
        params = self._build_parameters(
            columns=columns,
            sample_count=sample_count,
            filters=filters,
            sort_by=sort_by,
            limit=limit,
            offset=offset,
            allow_partial_results=allow_partial_results,
        )
        return self._get_results_by_url(self.url(f"execution/{execution_id}/results"), params)

    def get_result_csv(
        self,
        execution_id: str,
        limit: int | None = None,
        offset: int | None = None,
        columns: list[str] | None = None,
        sample_count: int | None = None,
        filters: str | None = None,
        sort_by: list[str] | None = None,
    ) -> ExecutionResultCSV:
        """
        GET a page of results in CSV format from Dune API for `execution_id`

        this API only returns the raw data in CSV format, it is faster & lighterweight
        use this method for large results where you want lower CPU and memory overhead
        if you need metadata information use get_execution_results() or get_execution_status()
        """
        params = self._build_parameters(
            columns=columns,
            sample_count=sample_count,
            filters=filters,
            sort_by=sort_by,
            limit=limit,
            offset=offset,
        )
        url = self.url(f"execution/{execution_id}/results/csv")
        return self._get_result_csv_by_url(url, params)

    def get_last_execution_results(
        self,
        query_id: int,
        query_parameters: list[QueryParameter] | None = None,
        limit: int | None = None,
        offset: int | None = None,
        columns: list[str] | None = None,
        sample_count: int | None = None,
        filters: str | None = None,
        sort_by: list[str] | None = None,
    ) -> ResultsResponse:
        """
        GET the results of the latest execution of `query_id` without executing it again
        https://docs.dune.com/api-reference/executions/endpoint/get-query-result
        """
        params = self._build_parameters(
            params=self._query_params(query_parameters),
            columns=columns,
            sample_count=sample_count,
            filters=filters,
            sort_by=sort_by,
            limit=limit,
            offset=offset,
        )
        return self._get_results_by_url(self.url(f"query/{query_id}/results"), params)

    def get_last_result_csv(
        self,
        query_id: int,
        query_parameters: list[QueryParameter] | None = None,
        limit: int | None = None,
        offset: int | None = None,
        columns: list[str] | None = None,
        sample_count: int | None = None,
        filters: str | None = None,
        sort_by: list[str] | None = None,
    ) -> ExecutionResultCSV:
        """
        GET the latest results of `query_id` in CSV format
        https://docs.dune.com/api-reference/executions/endpoint/get-query-result-csv
        """
        params = self._build_parameters(
            params=self._query_params(query_parameters),
            columns=columns,
            sample_count=sample_count,
            filters=filters,
            sort_by=sort_by,
            limit=limit,
            offset=offset,
        )
        return self._get_result_csv_by_url(self.url(f"query/{query_id}/results/csv"), params)

    def _get_results_by_url(
        self, url: str, params: dict[str, Any] | None = None
    ) -> ResultsResponse:
        """
        GET results from Dune API with a given URL. This is particularly useful for pagination.
        """
        response_json = self._get_by_url(url, params)
        try:
            result = ResultsResponse.from_dict(response_json)
        except KeyError as err:
            raise ResponseShapeError(response_json, "ResultsResponse", err) from err
        if result.state == ExecutionState.PARTIAL:
            self.logger.warning(
                f"execution {result.execution_id} resulted in a partial "
                f"result set (i.e. results too large)."
            )
        return result

    def _get_result_csv_by_url(
        self, url: str, params: dict[str, Any] | None = None
    ) -> ExecutionResultCSV:
        """
        GET results in CSV format from Dune API with a given URL.
        The pagination pointers travel in response headers.
        """
        response = self._get_by_url(url, params, raw=True)
        return self._csv_result(response)

    def _csv_result(self, response: Response) -> ExecutionResultCSV:
        if not response.ok:
            # error bodies are JSON and raise DuneError here
            self._handle_response(response)
        return ExecutionResultCSV(
            data=self._response_text(response),
            next_uri=response.headers.get(DUNE_CSV_NEXT_URI_HEADER),
            next_offset=self._parse_next_offset(response.headers.get(DUNE_CSV_NEXT_OFFSET_HEADER)),
        )
