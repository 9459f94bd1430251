"""
Errors and dataclasses encoding response data from Dune API.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from dataclasses_json import DataClassJsonMixin
from dateutil.parser import parse

if TYPE_CHECKING:
    from datetime import datetime

    from dune_sdk.types import DuneRecord

log = logging.getLogger(__name__)


class DuneError(Exception):
    """
    Single error kind raised for every failed API call.
    Callers distinguish failures by `message`, for example
        invalid API Key
        Query not found
        The requested execution ID (ID: Wonky Job ID) is invalid.
        FAILED_TYPE_EXECUTION_FAILED
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Response Error: {message}")


class ResponseShapeError(DuneError):
    """Response decoded fine but could not be mapped onto the expected type"""

    def __init__(self, data: Any, response_class: str, err: KeyError):
        message = f"Can't build {response_class} from {data}"
        log.error(f"{message} due to KeyError: {err}")
        super().__init__(message)


class QueryFailedError(Exception):
    """Query execution finished in the failed state"""


def error_message(error: Any) -> str:
    """
    Message carried by the `error` field of a response body.
    The field is either plain text or an object whose `type` names the failure:
        {"error": "Query not found"}
        {"error": {"type": "FAILED_TYPE_EXECUTION_FAILED", "message": "..."}}
    """
    if isinstance(error, dict):
        if "type" in error:
            return str(error["type"])
        return json.dumps(error, separators=(",", ":"))
    return str(error)


class ExecutionState(Enum):
    """
    Enum for possible values of Query Execution
    """

    COMPLETED = "QUERY_STATE_COMPLETED"
    EXECUTING = "QUERY_STATE_EXECUTING"
    PARTIAL = "QUERY_STATE_COMPLETED_PARTIAL"
    PENDING = "QUERY_STATE_PENDING"
    CANCELLED = "QUERY_STATE_CANCELLED"
    FAILED = "QUERY_STATE_FAILED"
    EXPIRED = "QUERY_STATE_EXPIRED"

    @classmethod
    def terminal_states(cls) -> set[ExecutionState]:
        """States in which an execution has stopped running"""
        return {cls.COMPLETED, cls.CANCELLED, cls.FAILED, cls.EXPIRED, cls.PARTIAL}

    def is_complete(self) -> bool:
        """Returns True is state is completed, otherwise False."""
        return self == ExecutionState.COMPLETED


@dataclass
class ExecutionResponse:
    """
    Response of [Post] query/{query_id}/execute
    """

    execution_id: str
    state: ExecutionState

    @classmethod
    def from_dict(cls, data: dict[str, str]) -> ExecutionResponse:
        """Constructor from dictionary. See unit test for sample input."""
        return cls(execution_id=data["execution_id"], state=ExecutionState(data["state"]))


def _optional_date(value: str | None) -> datetime | None:
    return None if value is None else parse(value)


@dataclass
class TimeData:
    """Timestamps reported alongside an execution"""

    submitted_at: datetime
    execution_started_at: datetime | None
    execution_ended_at: datetime | None
    # only present once there is result data
    expires_at: datetime | None
    # only present on cancelled executions
    cancelled_at: datetime | None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TimeData:
        """Constructor from dictionary. See unit test for sample input."""
        return cls(
            submitted_at=parse(data["submitted_at"]),
            execution_started_at=_optional_date(data.get("execution_started_at")),
            execution_ended_at=_optional_date(data.get("execution_ended_at")),
            expires_at=_optional_date(data.get("expires_at")),
            cancelled_at=_optional_date(data.get("cancelled_at")),
        )


@dataclass
class ExecutionError:
    """
    Error details of a failed execution, e.g.
    {
        "type": "FAILED_TYPE_EXECUTION_FAILED",
        "message": "line 1:8: mismatched input 'selecdt'",
        "metadata": {"line": 1, "column": 8}
    }
    """

    type: str
    message: str
    metadata: dict[str, Any] | None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExecutionError:
        """Constructs an instance from a dict"""
        return cls(
            type=data.get("type", "unknown"),
            message=data.get("message", "unknown"),
            metadata=data.get("metadata"),
        )


@dataclass
class ResultMetadata:
    """
    Metadata describing a (page of a) result set
    """

    column_names: list[str]
    column_types: list[str]
    row_count: int
    result_set_bytes: int
    total_row_count: int
    total_result_set_bytes: int
    datapoint_count: int
    pending_time_millis: int | None
    execution_time_millis: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResultMetadata:
        """Constructor from dictionary. See unit test for sample input."""
        assert isinstance(data["column_names"], list)
        pending_time = data.get("pending_time_millis")
        return cls(
            column_names=data["column_names"],
            column_types=data.get("column_types", []),
            row_count=int(data["row_count"]),
            result_set_bytes=int(data["result_set_bytes"]),
            total_row_count=int(data["total_row_count"]),
            total_result_set_bytes=int(data["total_result_set_bytes"]),
            datapoint_count=int(data["datapoint_count"]),
            pending_time_millis=int(pending_time) if pending_time else None,
            execution_time_millis=int(data["execution_time_millis"]),
        )

    def __add__(self, other: ResultMetadata) -> ResultMetadata:
        """Accumulates the per-page counters of `other` onto this metadata"""
        self.row_count += other.row_count
        self.result_set_bytes += other.result_set_bytes
        self.datapoint_count += other.datapoint_count
        return self


@dataclass
class ExecutionStatusResponse:
    """
    Response of [Get] execution/{execution_id}/status
    """

    execution_id: str
    query_id: int
    state: ExecutionState
    times: TimeData
    queue_position: int | None
    # present once the execution completes
    result_metadata: ResultMetadata | None
    error: ExecutionError | None
    is_execution_finished: bool | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExecutionStatusResponse:
        """Constructor from dictionary. See unit test for sample input."""
        metadata = data.get("result_metadata")
        error = data.get("error")
        return cls(
            execution_id=data["execution_id"],
            query_id=int(data["query_id"]),
            state=ExecutionState(data["state"]),
            times=TimeData.from_dict(data),
            queue_position=data.get("queue_position"),
            result_metadata=ResultMetadata.from_dict(metadata) if metadata else None,
            error=ExecutionError.from_dict(error) if error else None,
            is_execution_finished=data.get("is_execution_finished"),
        )

    def __str__(self) -> str:
        if self.state == ExecutionState.PENDING:
            return f"{self.state} (queue position: {self.queue_position})"
        if self.state == ExecutionState.FAILED:
            return (
                f"{self.state}: execution_id={self.execution_id}, "
                f"query_id={self.query_id}, times={self.times}"
            )
        return f"{self.state}"


@dataclass
class ExecutionResult:
    """The `result` field of a results response"""

    rows: list[DuneRecord]
    metadata: ResultMetadata

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExecutionResult:
        """Constructor from dictionary. See unit test for sample input."""
        assert isinstance(data["rows"], list)
        return cls(
            rows=data["rows"],
            metadata=ResultMetadata.from_dict(data["metadata"]),
        )

    def __add__(self, other: ExecutionResult) -> ExecutionResult:
        self.rows.extend(other.rows)
        self.metadata += other.metadata
        return self


@dataclass
class ResultsResponse:
    """
    Response of [Get] execution/{execution_id}/results
    and [Get] query/{query_id}/results
    """

    execution_id: str
    query_id: int
    state: ExecutionState
    times: TimeData
    # only present when the execution completed
    result: ExecutionResult | None
    next_uri: str | None = None
    next_offset: int | None = None
    is_execution_finished: bool | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResultsResponse:
        """Constructor from dictionary. See unit test for sample input."""
        result = data.get("result")
        return cls(
            execution_id=data["execution_id"],
            query_id=int(data["query_id"]),
            state=ExecutionState(data["state"]),
            times=TimeData.from_dict(data),
            result=ExecutionResult.from_dict(result) if result else None,
            next_uri=data.get("next_uri"),
            next_offset=data.get("next_offset"),
            is_execution_finished=data.get("is_execution_finished"),
        )

    def get_rows(self) -> list[DuneRecord]:
        """
        Result rows, or an empty list when the execution did not complete.
        """
        if self.state in (ExecutionState.COMPLETED, ExecutionState.PARTIAL):
            assert self.result is not None, f"No Results on completed execution {self}"
            return self.result.rows

        log.info(f"execution {self.state} returning empty list")
        return []

    def __add__(self, other: ResultsResponse) -> ResultsResponse:
        """Appends the next page `other` onto these results"""
        assert self.execution_id == other.execution_id
        assert self.result is not None
        assert other.result is not None
        self.result += other.result
        self.next_uri = other.next_uri
        self.next_offset = other.next_offset
        return self


@dataclass
class ExecutionResultCSV:
    """
    A page of results as CSV text, header row included.
    Feed it to csv.reader(io.StringIO(data)) or similar.
    """

    data: str
    next_uri: str | None = None
    next_offset: int | None = None

    def __add__(self, other: ExecutionResultCSV) -> ExecutionResultCSV:
        """Appends the rows of the next page, skipping its header row"""
        _header, _, rows = other.data.partition("\n")
        if self.data and not self.data.endswith("\n"):
            self.data += "\n"
        self.data += rows
        self.next_uri = other.next_uri
        self.next_offset = other.next_offset
        return self


@dataclass
class CreateTableResult(DataClassJsonMixin):
    """
    Data type returned by table/create operation
    """

    namespace: str
    table_name: str
    full_name: str
    example_query: str


@dataclass
class InsertTableResult(DataClassJsonMixin):
    """
    Data type returned by table/insert operation
    """

    rows_written: int
    bytes_written: int


@dataclass
class ClearTableResult(DataClassJsonMixin):
    """
    Data type returned by table/clear operation
    """

    message: str
