"""
Custom endpoints API enables users to
fetch and filter data from custom endpoints.
"""

from __future__ import annotations

from dune_sdk.api.router import Router
from dune_sdk.models import ResponseShapeError, ResultsResponse


class CustomAPI(Router):
    """
    Results of custom endpoints created on dune.com
    https://docs.dune.com/api-reference/custom/overview
    """

    def get_results(
        self,
        handle: str,
        endpoint: str,
        limit: int | None = None,
        offset: int | None = None,
        columns: list[str] | None = None,
        sample_count: int | None = None,
        filters: str | None = None,
        sort_by: list[str] | None = None,
    ) -> ResultsResponse:
        """
        Fetch and filter the data of a custom endpoint.

        Args:
            handle (str): The handle of the team/user.
            endpoint (str): The slug of the custom endpoint.
            limit (int, optional): The maximum number of results to return.
            offset (int, optional): The number of results to skip.
            columns (List[str], optional): A list of columns to return.
            sample_count (int, optional): Uniformly sample this many rows.
            filters (str, optional): The filters to apply.
            sort_by (List[str], optional): The columns to sort by.
        """
        params = self._build_parameters(
            columns=columns,
            sample_count=sample_count,
            filters=filters,
            sort_by=sort_by,
            limit=limit,
            offset=offset,
        )
        response_json = self._get(route=f"endpoints/{handle}/{endpoint}/results", params=params)
        try:
            return ResultsResponse.from_dict(response_json)
        except KeyError as err:
            raise ResponseShapeError(response_json, "ResultsResponse", err) from err
