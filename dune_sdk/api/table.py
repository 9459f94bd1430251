"""
Table API endpoints enables users to
create tables and insert data into Dune.
"""

from __future__ import annotations

from dune_sdk.api.router import Router
from dune_sdk.models import (
    ClearTableResult,
    CreateTableResult,
    InsertTableResult,
    ResponseShapeError,
)
from dune_sdk.types import ContentType


class TableAPI(Router):
    """
    Implementation of Table endpoints - Plus subscription only
    https://docs.dune.com/api-reference/tables/
    """

    def upload_csv(
        self,
        table_name: str,
        data: str,
        description: str = "",
        is_private: bool = False,
    ) -> bool:
        """
        https://docs.dune.com/api-reference/tables/endpoint/upload
        Uploads a .csv file into Dune. The only limitations are:

        - File has to be < 200 MB
        - Column names in the table can't start with a special character or digits.
        - Private uploads require a Plus subscription.
        """
        response_json = self._post(
            route="table/upload/csv",
            params={
                "table_name": table_name,
                "description": description,
                "data": data,
                "is_private": is_private,
            },
        )
        try:
            return bool(response_json["success"])
        except KeyError as err:
            raise ResponseShapeError(response_json, "UploadCsvResponse", err) from err

    def create_table(
        self,
        namespace: str,
        table_name: str,
        schema: list[dict[str, str]],
        description: str = "",
        is_private: bool = False,
    ) -> CreateTableResult:
        """
        https://docs.dune.com/api-reference/tables/endpoint/create
        Creates an empty table with a specific schema in Dune.
        Fails when a table with the same name already exists.
        """
        response_json = self._post(
            route="table/create",
            params={
                "namespace": namespace,
                "table_name": table_name,
                "schema": schema,
                "description": description,
                "is_private": is_private,
            },
        )
        try:
            return CreateTableResult.from_dict(response_json)
        except KeyError as err:
            raise ResponseShapeError(response_json, "CreateTableResult", err) from err

    def insert_table(
        self,
        namespace: str,
        table_name: str,
        data: bytes,
        content_type: ContentType,
    ) -> InsertTableResult:
        """
        https://docs.dune.com/api-reference/tables/endpoint/insert
        Inserts CSV or NDJSON `data` into an existing table with the same schema.
        The bytes are sent as the request body unmodified.
        """
        if content_type not in (ContentType.CSV, ContentType.NDJSON):
            raise ValueError(f"insert_table does not accept {content_type.value} data")
        response_json = self._post(
            route=f"table/{namespace}/{table_name}/insert",
            params=data,
            content_type=content_type,
        )
        try:
            return InsertTableResult.from_dict(response_json)
        except KeyError as err:
            raise ResponseShapeError(response_json, "InsertTableResult", err) from err

    def clear_data(self, namespace: str, table_name: str) -> ClearTableResult:
        """
        https://docs.dune.com/api-reference/tables/endpoint/clear
        Removes all the data in the specified table, but does not delete the table.
        """
        response_json = self._post(route=f"table/{namespace}/{table_name}/clear")
        try:
            return ClearTableResult.from_dict(response_json)
        except KeyError as err:
            raise ResponseShapeError(response_json, "ClearTableResult", err) from err
