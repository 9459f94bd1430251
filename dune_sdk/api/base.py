"""
Configuration and request building shared by the sync and async Dune clients.
Framework built on Dune's API Documentation
https://docs.dune.com/api-reference/overview/introduction
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from enum import Enum
from typing import Any
from urllib.parse import urlencode

from dune_sdk.models import DuneError, error_message
from dune_sdk.types import (
    ContentType,
    ExecutionPerformance,
    QueryParameter,
    RequestPayload,
    parameter_values,
)
from dune_sdk.util import get_package_version, payload_json, payload_search_params

DEFAULT_BASE_URL = "https://api.dune.com"
PACKAGE_NAME = "dune-sdk"
PACKAGE_URL = "https://pypi.org/project/dune-sdk/"
# Reported in the User-Agent when the distribution metadata is unavailable
FALLBACK_VERSION = "0.1.0"

# Headers used for pagination in CSV results
DUNE_CSV_NEXT_URI_HEADER = "x-dune-next-uri"
DUNE_CSV_NEXT_OFFSET_HEADER = "x-dune-next-offset"
# Default maximum number of rows to retrieve per batch of results
MAX_NUM_ROWS_PER_BATCH = 32_000


class RequestMethod(Enum):
    """HTTP methods used by the Dune API"""

    GET = "GET"
    POST = "POST"
    PATCH = "PATCH"


class BaseDuneClient:
    """
    Holds the credentials and transport settings of a client and knows how
    to turn a logical API call into url, body and headers.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_version: str = "v1",
        base_url: str | None = None,
        request_timeout: float | None = None,
        performance: str = "medium",
    ):
        # Read from environment variables if not provided
        api_key = api_key or os.environ["DUNE_API_KEY"]
        base_url = base_url or os.environ.get("DUNE_API_BASE_URL", DEFAULT_BASE_URL)
        request_timeout = request_timeout or float(os.environ.get("DUNE_API_REQUEST_TIMEOUT", "10"))

        self._api_key = api_key
        self._api_version = api_version
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self.performance = performance
        self.logger = logging.getLogger(__name__)
        version = get_package_version(PACKAGE_NAME) or FALLBACK_VERSION
        self._user_agent = f"{PACKAGE_NAME}@{version} ({PACKAGE_URL})"

    @property
    def api_key(self) -> str:
        """API key sent with every request"""
        return self._api_key

    @property
    def api_version(self) -> str:
        """API version segment of every route, e.g. v1"""
        return self._api_version

    def url(self, route: str = "") -> str:
        """Absolute url of `route` on the versioned API"""
        return f"{self.base_url}/api/{self.api_version}/{route.lstrip('/')}"

    def default_headers(self, content_type: ContentType = ContentType.JSON) -> dict[str, str]:
        """Headers sent with every request"""
        return {
            "x-dune-api-key": self.api_key,
            "User-Agent": self._user_agent,
            "Content-Type": content_type.value,
        }

    ############
    # Utilities:
    ############

    @staticmethod
    def _prepare_request(
        method: RequestMethod,
        url: str,
        payload: RequestPayload | None,
    ) -> tuple[str, str | bytes | None]:
        """
        Returns the final url and body for a request.
        GET payloads become the query string, everything else the body.
        """
        if method == RequestMethod.GET:
            if payload is None:
                return url, None
            if not isinstance(payload, Mapping):
                raise TypeError(f"GET payload must be a mapping, got {type(payload)!r}")
            query = urlencode(payload_search_params(payload))
            if not query:
                return url, None
            # next_uri pointers already carry a query string
            separator = "&" if "?" in url else "?"
            return f"{url}{separator}{query}", None
        if isinstance(payload, (bytes, bytearray)):
            return url, bytes(payload)
        return url, payload_json(payload)

    def _log_request(self, method: RequestMethod, url: str, body: str | bytes | None) -> None:
        shown = f"<{len(body)} bytes>" if isinstance(body, bytes) else body
        self.logger.debug(f"{method.value} received input url={url}, payload={shown}")

    def _log_status(self, ok: bool, status: int, reason: str | None) -> None:
        if not ok:
            self.logger.error(f"response error {status} - {reason}")

    def _check_result(self, result: Any) -> Any:
        """Raises DuneError when the decoded body carries an `error` field"""
        self.logger.debug(f"received response {result}")
        if isinstance(result, dict) and result.get("error"):
            self.logger.error(f"error contained in response {result}")
            raise DuneError(error_message(result["error"]))
        return result

    def _build_parameters(
        self,
        params: dict[str, Any] | None = None,
        columns: list[str] | None = None,
        sample_count: int | None = None,
        filters: str | None = None,
        sort_by: list[str] | None = None,
        limit: int | None = None,
        offset: int | None = None,
        allow_partial_results: str | None = None,
    ) -> dict[str, Any]:
        """
        Builds the GET parameters used when retrieving results
        (filters, pagination, sorting, sampling).
        """
        self._validate_sampling(sample_count, limit, filters, offset)

        result: dict[str, Any] = dict(params) if params else {}
        if allow_partial_results is not None:
            result["allow_partial_results"] = allow_partial_results
        if columns:
            result["columns"] = ",".join(columns)
        if sample_count is not None:
            result["sample_count"] = sample_count
        if filters is not None:
            result["filters"] = filters
        if sort_by:
            result["sort_by"] = ",".join(sort_by)
        if limit is not None:
            result["limit"] = limit
        if offset is not None:
            result["offset"] = offset
        return result

    @staticmethod
    def _query_params(params: list[QueryParameter] | None) -> dict[str, Any]:
        """Query parameters in the `params.<key>` form the results routes expect"""
        return {f"params.{key}": value for key, value in parameter_values(params).items()}

    @staticmethod
    def _performance(performance: ExecutionPerformance | str | None, default: str) -> str:
        if isinstance(performance, ExecutionPerformance):
            return performance.value
        return performance or default

    def _parse_next_offset(self, header_value: str | None) -> int | None:
        if header_value is None:
            return None
        try:
            return int(header_value)
        except ValueError:
            self.logger.warning(
                f"invalid {DUNE_CSV_NEXT_OFFSET_HEADER} header {header_value!r}; ignoring"
            )
            return None

    @staticmethod
    def _validate_sampling(
        sample_count: int | None,
        limit: int | None,
        filters: str | None,
        offset: int | None = None,
    ) -> None:
        assert sample_count is None or (limit is None and offset is None and filters is None), (
            "sampling cannot be combined with filters or pagination"
        )
