"""
Generic request router utilized by all Dune API routes.
"""

from __future__ import annotations

from typing import Any

from requests import RequestException, Response, Session
from requests.exceptions import JSONDecodeError

from dune_sdk.api.base import BaseDuneClient, RequestMethod
from dune_sdk.models import DuneError
from dune_sdk.types import ContentType, RequestPayload


class Router(BaseDuneClient):
    """
    Dispatches GET, POST and PATCH calls to the Dune API and normalizes
    the responses. Each call is exactly one HTTP request, never retried.
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
        self.http = Session()

    def post(
        self,
        route: str,
        params: RequestPayload | None = None,
        content_type: ContentType = ContentType.JSON,
    ) -> Any:
        """
        POST to any route supported by the Dune API.
        Meant as a low level call for the endpoint methods, but usable directly
        for routes the SDK does not wrap yet.
        """
        return self._request(RequestMethod.POST, self.url(route), params, content_type=content_type)

    @staticmethod
    def _response_text(response: Response) -> str:
        """Body as text, UTF-8 unless the Content-Type names a charset"""
        # requests falls back to ISO-8859-1 for text/* bodies without a charset
        if "charset" not in response.headers.get("Content-Type", ""):
            response.encoding = "utf-8"
        return response.text

    def _handle_response(self, response: Response) -> Any:
        """
        Decodes the body (JSON, or text for CSV endpoints) and raises DuneError
        when it carries an `error` field. A failed status code alone is only logged.
        """
        try:
            self._log_status(response.ok, response.status_code, response.reason)
            try:
                result = response.json()
            except JSONDecodeError:
                # CSV endpoints answer with plain text
                result = self._response_text(response)
            return self._check_result(result)
        except DuneError:
            raise
        except (RequestException, ValueError) as err:
            self.logger.error(f"caught unhandled response error {err!r}")
            raise DuneError(str(err)) from err

    def _request(
        self,
        method: RequestMethod,
        url: str,
        payload: RequestPayload | None = None,
        raw: bool = False,
        content_type: ContentType = ContentType.JSON,
    ) -> Any:
        """
        Sends a single request. With `raw` the Response is handed back as is,
        which the CSV and binary call sites use to read headers and body themselves.
        """
        final_url, body = self._prepare_request(method, url, payload)
        self._log_request(method, final_url, body)
        try:
            response = self.http.request(
                method.value,
                final_url,
                data=body,
                headers=self.default_headers(content_type),
                timeout=self.request_timeout,
            )
        except RequestException as err:
            self.logger.error(f"{method.value} {final_url} failed: {err!r}")
            raise DuneError(str(err)) from err
        if raw:
            return response
        return self._handle_response(response)

    def _get(
        self,
        route: str,
        params: RequestPayload | None = None,
        raw: bool = False,
    ) -> Any:
        """Generic interface for the GET method of a Dune API request"""
        return self._request(RequestMethod.GET, self.url(route), params, raw)

    def _get_by_url(
        self,
        url: str,
        params: RequestPayload | None = None,
        raw: bool = False,
    ) -> Any:
        """GET on an absolute url, e.g. a `next_uri` handed out for pagination"""
        return self._request(RequestMethod.GET, url, params, raw)

    def _post(
        self,
        route: str,
        params: RequestPayload | None = None,
        content_type: ContentType = ContentType.JSON,
    ) -> Any:
        """Generic interface for the POST method of a Dune API request"""
        return self._request(RequestMethod.POST, self.url(route), params, content_type=content_type)

    def _patch(self, route: str, params: RequestPayload | None = None) -> Any:
        """Generic interface for the PATCH method of a Dune API request"""
        return self._request(RequestMethod.PATCH, self.url(route), params)
