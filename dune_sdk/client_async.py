"""
Async Dune Client Class responsible for executing Dune Queries and fetching their results
Framework built on Dune's API Documentation
https://docs.dune.com/api-reference/overview/introduction
"""

from __future__ import annotations

import asyncio
import json
import ssl
from typing import TYPE_CHECKING, Any, Self, TypeVar

import certifi
from aiohttp import ClientError, ClientResponse, ClientSession, ClientTimeout, TCPConnector

from dune_sdk.api.base import (
    DUNE_CSV_NEXT_OFFSET_HEADER,
    DUNE_CSV_NEXT_URI_HEADER,
    MAX_NUM_ROWS_PER_BATCH,
    BaseDuneClient,
    RequestMethod,
)
from dune_sdk.models import (
    DuneError,
    ExecutionResponse,
    ExecutionResultCSV,
    ExecutionState,
    ExecutionStatusResponse,
    QueryFailedError,
    ResponseShapeError,
    ResultsResponse,
)
from dune_sdk.types import ContentType, RequestPayload, parameter_values

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from dune_sdk.types import ExecutionPerformance, QueryParameter

PaginatedResult = TypeVar("PaginatedResult", ResultsResponse, ExecutionResultCSV)


class AsyncDuneClient(BaseDuneClient):
    """
    An asynchronous interface for Dune API with a few convenience methods
    combining the use of endpoints (e.g. run_query)

    Must be used as an async context manager:
        async with AsyncDuneClient() as client:
            results = await client.run_query(query_id)
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_version: str = "v1",
        base_url: str | None = None,
        request_timeout: float | None = None,
        performance: str = "medium",
    ):
        super().__init__(api_key, api_version, base_url, request_timeout, performance)
        self._session: ClientSession | None = None

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: object
    ) -> None:
        await self.disconnect()

    async def connect(self) -> None:
        if self._session is not None:
            raise RuntimeError("AsyncDuneClient session already active")
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        self._session = ClientSession(
            connector=TCPConnector(ssl=ssl_context),
            timeout=ClientTimeout(total=self.request_timeout),
        )

    async def disconnect(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    def _require_session(self) -> ClientSession:
        if self._session is None:
            raise RuntimeError("AsyncDuneClient must be used as an async context manager")
        return self._session

    async def _handle_response(self, response: ClientResponse) -> Any:
        """Same normalization as the sync Router: JSON, else text, error field raises"""
        try:
            self._log_status(response.ok, response.status, response.reason)
            text = await response.text()
            try:
                result = json.loads(text)
            except ValueError:
                # CSV endpoints answer with plain text
                result = text
            return self._check_result(result)
        except DuneError:
            raise
        except (ClientError, ValueError, asyncio.TimeoutError) as err:
            self.logger.error(f"caught unhandled response error {err!r}")
            raise DuneError(str(err) or type(err).__name__) from err

    async def _request(
        self,
        method: RequestMethod,
        url: str,
        payload: RequestPayload | None = None,
        raw: bool = False,
        content_type: ContentType = ContentType.JSON,
    ) -> Any:
        session = self._require_session()
        final_url, body = self._prepare_request(method, url, payload)
        self._log_request(method, final_url, body)
        try:
            response = await session.request(
                method.value,
                final_url,
                data=body,
                headers=self.default_headers(content_type),
            )
        except (ClientError, asyncio.TimeoutError) as err:
            self.logger.error(f"{method.value} {final_url} failed: {err!r}")
            raise DuneError(str(err) or type(err).__name__) from err
        if raw:
            return response
        return await self._handle_response(response)

    async def _get(
        self, route: str, params: RequestPayload | None = None, raw: bool = False
    ) -> Any:
        return await self._request(RequestMethod.GET, self.url(route), params, raw)

    async def _get_by_url(
        self, url: str, params: RequestPayload | None = None, raw: bool = False
    ) -> Any:
        return await self._request(RequestMethod.GET, url, params, raw)

    async def _post(self, route: str, params: RequestPayload | None = None) -> Any:
        return await self._request(RequestMethod.POST, self.url(route), params)

    async def execute_query(
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
        response_json = await self._post(route=f"query/{query_id}/execute", params=params)
        try:
            return ExecutionResponse.from_dict(response_json)
        except KeyError as err:
            raise ResponseShapeError(response_json, "ExecutionResponse", err) from err

    async def cancel_execution(self, execution_id: str) -> bool:
        response_json = await self._post(route=f"execution/{execution_id}/cancel")
        try:
            success: bool = response_json["success"]
        except KeyError as err:
            raise ResponseShapeError(response_json, "CancellationResponse", err) from err
        return success

    async def get_execution_status(self, execution_id: str) -> ExecutionStatusResponse:
        """GET status from Dune API for `execution_id`"""
        response_json = await self._get(route=f"execution/{execution_id}/status")
        try:
            return ExecutionStatusResponse.from_dict(response_json)
        except KeyError as err:
            raise ResponseShapeError(response_json, "ExecutionStatusResponse", err) from err

    async def get_execution_results(
        self,
        execution_id: str,
        limit: int | None = None,
        offset: int | None = None,
        columns: list[str] | None = None,
        sample_count: int | None = None,
        filters: str | None = None,
        sort_by: list[str] | None = None,
    ) -> ResultsResponse:
        """GET a page of results from Dune API for `execution_id`"""
        params = self._build_parameters(
            columns=columns,
            sample_count=sample_count,
            filters=filters,
            sort_by=sort_by,
            limit=limit,
            offset=offset,
        )
        return await self._get_results_by_url(self.url(f"execution/{execution_id}/results"), params)

    async def get_result_csv(
        self,
        execution_id: str,
        limit: int | None = None,
        offset: int | None = None,
        columns: list[str] | None = None,
        sample_count: int | None = None,
        filters: str | None = None,
        sort_by: list[str] | None = None,
    ) -> ExecutionResultCSV:
        """GET a page of results in CSV format from Dune API for `execution_id`"""
        params = self._build_parameters(
            columns=columns,
            sample_count=sample_count,
            filters=filters,
            sort_by=sort_by,
            limit=limit,
            offset=offset,
        )
        url = self.url(f"execution/{execution_id}/results/csv")
        return await self._get_result_csv_by_url(url, params)

    async def get_last_execution_results(
        self,
        query_id: int,
        query_parameters: list[QueryParameter] | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> ResultsResponse:
        """
        GET the results of the latest execution of `query_id` without executing it again
        """
        params = self._build_parameters(
            params=self._query_params(query_parameters), limit=limit, offset=offset
        )
        return await self._get_results_by_url(self.url(f"query/{query_id}/results"), params)

    ########################
    # Higher level functions
    ########################

    async def run_query(
        self,
        query_id: int,
        query_parameters: list[QueryParameter] | None = None,
        ping_frequency: float = 5,
        performance: ExecutionPerformance | str | None = None,
        batch_size: int | None = None,
    ) -> ResultsResponse:
        """
        Executes `query_id`, waits until execution completes,
        fetches and returns all pages of the results.
        """
        execution_id = await self._refresh(query_id, query_parameters, ping_frequency, performance)
        return await self._collect_pages(
            lambda: self.get_execution_results(
                execution_id, limit=batch_size or MAX_NUM_ROWS_PER_BATCH
            ),
            self._get_results_by_url,
        )

    async def run_query_csv(
        self,
        query_id: int,
        query_parameters: list[QueryParameter] | None = None,
        ping_frequency: float = 5,
        performance: ExecutionPerformance | str | None = None,
        batch_size: int | None = None,
    ) -> ExecutionResultCSV:
        """
        Executes `query_id`, waits till execution completes
        and returns all the results in CSV format
        """
        execution_id = await self._refresh(query_id, query_parameters, ping_frequency, performance)
        return await self._collect_pages(
            lambda: self.get_result_csv(execution_id, limit=batch_size or MAX_NUM_ROWS_PER_BATCH),
            self._get_result_csv_by_url,
        )

    #################
    # Private Methods
    #################

    async def _get_results_by_url(
        self, url: str, params: dict[str, Any] | None = None
    ) -> ResultsResponse:
        response_json = await self._get_by_url(url, params)
        try:
            return ResultsResponse.from_dict(response_json)
        except KeyError as err:
            raise ResponseShapeError(response_json, "ResultsResponse", err) from err

    async def _get_result_csv_by_url(
        self, url: str, params: dict[str, Any] | None = None
    ) -> ExecutionResultCSV:
        response = await self._get_by_url(url, params, raw=True)
        try:
            if not response.ok:
                # error bodies are JSON and raise DuneError here
                await self._handle_response(response)
            return ExecutionResultCSV(
                data=await response.text(),
                next_uri=response.headers.get(DUNE_CSV_NEXT_URI_HEADER),
                next_offset=self._parse_next_offset(
                    response.headers.get(DUNE_CSV_NEXT_OFFSET_HEADER)
                ),
            )
        finally:
            response.release()

    async def _refresh(
        self,
        query_id: int,
        query_parameters: list[QueryParameter] | None = None,
        ping_frequency: float = 5,
        performance: ExecutionPerformance | str | None = None,
    ) -> str:
        execution = await self.execute_query(query_id, query_parameters, performance)
        execution_id = execution.execution_id
        terminal_states = ExecutionState.terminal_states()

        while True:
            status = await self.get_execution_status(execution_id)
            if status.state in terminal_states:
                if status.state == ExecutionState.FAILED:
                    # a status body carrying `error` has already raised DuneError
                    self.logger.error(status)
                    raise QueryFailedError(f"query execution {execution_id} failed")
                return execution_id

            self.logger.info(f"waiting for query execution {execution_id} to complete: {status}")
            await asyncio.sleep(ping_frequency)

    async def _collect_pages(
        self,
        fetch_first: Callable[[], Awaitable[PaginatedResult]],
        fetch_next: Callable[[str], Awaitable[PaginatedResult]],
    ) -> PaginatedResult:
        results = await fetch_first()
        while results.next_uri is not None:
            results += await fetch_next(results.next_uri)
        return results
