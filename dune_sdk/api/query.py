"""
CRUD API endpoints enables users to
create, read, update, make public/private or archive queries beyond the Dune IDE.
"""

from __future__ import annotations

from typing import Any

from dune_sdk.api.router import Router
from dune_sdk.models import ResponseShapeError
from dune_sdk.query import DuneQuery
from dune_sdk.types import QueryParameter


class QueryAPI(Router):
    """
    Implementation of Query API (aka CRUD) Operations - Plus subscription only
    https://docs.dune.com/api-reference/queries/endpoint/create
    """

    def create_query(
        self,
        name: str,
        query_sql: str,
        params: list[QueryParameter] | None = None,
        is_private: bool = False,
    ) -> int:
        """
        Creates a saved query and returns its id
        https://docs.dune.com/api-reference/queries/endpoint/create
        """
        payload: dict[str, Any] = {
            "name": name,
            "query_sql": query_sql,
            "is_private": is_private,
        }
        if params is not None:
            payload["parameters"] = [p.to_dict() for p in params]
        response_json = self._post(route="query", params=payload)
        return self._query_id(response_json, "CreateQueryResponse")

    def read_query(self, query_id: int) -> DuneQuery:
        """
        Retrieves Dune Query by ID
        https://docs.dune.com/api-reference/queries/endpoint/read
        """
        response_json = self._get(route=f"query/{query_id}")
        try:
            return DuneQuery.from_dict(response_json)
        except KeyError as err:
            raise ResponseShapeError(response_json, "DuneQuery", err) from err

    def update_query(
        self,
        query_id: int,
        name: str | None = None,
        query_sql: str | None = None,
        params: list[QueryParameter] | None = None,
        description: str | None = None,
        tags: list[str] | None = None,
    ) -> int:
        """
        Updates Dune Query by ID
        https://docs.dune.com/api-reference/queries/endpoint/update

        Omitted fields are left untouched.
        Empty `tags` or `params` lists delete them from the query.
        """
        changes: dict[str, Any] = {}
        if name is not None:
            changes["name"] = name
        if description is not None:
            changes["description"] = description
        if tags is not None:
            changes["tags"] = tags
        if query_sql is not None:
            changes["query_sql"] = query_sql
        if params is not None:
            changes["parameters"] = [p.to_dict() for p in params]

        if not changes:
            self.logger.warning("called update_query with no proposed changes.")
            return query_id

        response_json = self._patch(route=f"query/{query_id}", params=changes)
        return self._query_id(response_json, "UpdateQueryResponse")

    def archive_query(self, query_id: int) -> int:
        """
        https://docs.dune.com/api-reference/queries/endpoint/archive
        """
        response_json = self._post(route=f"query/{query_id}/archive")
        return self._query_id(response_json, "ArchiveQueryResponse")

    def unarchive_query(self, query_id: int) -> int:
        """
        https://docs.dune.com/api-reference/queries/endpoint/unarchive
        """
        response_json = self._post(route=f"query/{query_id}/unarchive")
        return self._query_id(response_json, "UnarchiveQueryResponse")

    def make_private(self, query_id: int) -> int:
        """
        https://docs.dune.com/api-reference/queries/endpoint/private
        """
        response_json = self._post(route=f"query/{query_id}/private")
        return self._query_id(response_json, "MakePrivateResponse")

    def make_public(self, query_id: int) -> int:
        """
        https://docs.dune.com/api-reference/queries/endpoint/unprivate
        """
        response_json = self._post(route=f"query/{query_id}/unprivate")
        return self._query_id(response_json, "MakePublicResponse")

    @staticmethod
    def _query_id(response_json: Any, response_class: str) -> int:
        try:
            return int(response_json["query_id"])
        except KeyError as err:
            raise ResponseShapeError(response_json, response_class, err) from err
