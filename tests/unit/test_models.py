import unittest
from datetime import datetime

from dateutil.tz import tzutc

from dune_sdk.models import (
    ClearTableResult,
    CreateTableResult,
    DuneError,
    ExecutionResponse,
    ExecutionResultCSV,
    ExecutionState,
    ExecutionStatusResponse,
    InsertTableResult,
    QueryFailedError,
    ResponseShapeError,
    ResultsResponse,
    TimeData,
    error_message,
)
from dune_sdk.query import DuneQuery
from dune_sdk.types import QueryParameter


class TestErrors(unittest.TestCase):
    def test_dune_error_message_and_str(self):
        err = DuneError("Query not found")
        assert err.message == "Query not found"
        assert str(err) == "Response Error: Query not found"

    def test_response_shape_error_is_dune_error(self):
        with self.assertLogs("dune_sdk.models", level="ERROR"):
            err = ResponseShapeError({"x": 1}, "ExecutionResponse", KeyError("execution_id"))
        assert isinstance(err, DuneError)
        assert err.message == "Can't build ExecutionResponse from {'x': 1}"

    def test_query_failed_error_is_separate(self):
        assert not issubclass(QueryFailedError, DuneError)

    def test_error_message(self):
        assert error_message("invalid API Key") == "invalid API Key"
        assert error_message({"type": "FAILED_TYPE_EXECUTION_FAILED"}) == (
            "FAILED_TYPE_EXECUTION_FAILED"
        )
        assert error_message({"message": "no type"}) == '{"message":"no type"}'


class TestModels(unittest.TestCase):
    def setUp(self) -> None:
        self.execution_id = "01GBM4W2N0NMCGPZYW8AYK4YF1"
        self.query_id = 980708
        self.submission_time_str = "2022-08-29T06:33:24.913138Z"
        self.execution_start_str = "2022-08-29T06:33:24.916543331Z"
        self.execution_end_str = "2022-08-29T06:33:25.816543331Z"
        self.metadata_data = {
            "column_names": ["ct", "TableName"],
            "column_types": ["bigint", "varchar"],
            "row_count": 2,
            "result_set_bytes": 194,
            "total_row_count": 8,
            "total_result_set_bytes": 776,
            "datapoint_count": 4,
            "pending_time_millis": 54,
            "execution_time_millis": 900,
        }
        self.results_data = {
            "execution_id": self.execution_id,
            "query_id": self.query_id,
            "state": "QUERY_STATE_COMPLETED",
            "is_execution_finished": True,
            "submitted_at": self.submission_time_str,
            "expires_at": "2024-08-28T06:36:41.58847Z",
            "execution_started_at": self.execution_start_str,
            "execution_ended_at": self.execution_end_str,
            "result": {
                "rows": [
                    {"TableName": "eth_blocks", "ct": 6296},
                    {"TableName": "eth_traces", "ct": 4474223},
                ],
                "metadata": self.metadata_data,
            },
            "next_uri": "https://api.dune.com/api/v1/execution/"
            "01GBM4W2N0NMCGPZYW8AYK4YF1/results?offset=2",
            "next_offset": 2,
        }

    def test_execution_response_parsing(self):
        assert ExecutionResponse.from_dict(
            {"execution_id": self.execution_id, "state": "QUERY_STATE_PENDING"}
        ) == ExecutionResponse(self.execution_id, ExecutionState.PENDING)

    def test_execution_response_missing_key(self):
        with self.assertRaises(KeyError):
            ExecutionResponse.from_dict({"state": "QUERY_STATE_PENDING"})

    def test_terminal_states(self):
        assert ExecutionState.PENDING not in ExecutionState.terminal_states()
        assert ExecutionState.EXECUTING not in ExecutionState.terminal_states()
        assert ExecutionState.PARTIAL in ExecutionState.terminal_states()
        assert ExecutionState.COMPLETED.is_complete()

    def test_time_data_parsing(self):
        times = TimeData.from_dict(
            {
                "submitted_at": self.submission_time_str,
                "cancelled_at": "2022-10-04T12:08:48.790331383Z",
            }
        )
        assert times.submitted_at == datetime(2022, 8, 29, 6, 33, 24, 913138, tzinfo=tzutc())
        assert times.execution_started_at is None
        assert times.cancelled_at is not None

    def test_status_response_parsing(self):
        status = ExecutionStatusResponse.from_dict(
            {
                "execution_id": self.execution_id,
                "query_id": self.query_id,
                "state": "QUERY_STATE_FAILED",
                "submitted_at": self.submission_time_str,
                "error": {
                    "type": "FAILED_TYPE_EXECUTION_FAILED",
                    "message": "line 1:1: mismatched input 'selecdt'",
                },
            }
        )
        assert status.state == ExecutionState.FAILED
        assert status.error is not None
        assert status.error.message == "line 1:1: mismatched input 'selecdt'"
        assert status.result_metadata is None

    def test_status_str_when_pending(self):
        status = ExecutionStatusResponse.from_dict(
            {
                "execution_id": self.execution_id,
                "query_id": self.query_id,
                "state": "QUERY_STATE_PENDING",
                "submitted_at": self.submission_time_str,
                "queue_position": 3,
            }
        )
        assert str(status) == "ExecutionState.PENDING (queue position: 3)"

    def test_results_response_parsing(self):
        results = ResultsResponse.from_dict(self.results_data)
        assert results.query_id == self.query_id
        assert results.is_execution_finished is True
        assert results.next_offset == 2
        assert results.get_rows() == self.results_data["result"]["rows"]
        assert results.result.metadata.total_row_count == 8

    def test_results_without_result_have_no_rows(self):
        data = dict(self.results_data, state="QUERY_STATE_CANCELLED")
        del data["result"]
        results = ResultsResponse.from_dict(data)
        assert results.result is None
        assert results.get_rows() == []

    def test_results_add(self):
        first = ResultsResponse.from_dict(self.results_data)
        second_data = dict(self.results_data, next_uri=None, next_offset=None)
        second_data["result"] = {
            "rows": [{"TableName": "eth_logs", "ct": 1}],
            "metadata": dict(
                self.metadata_data, row_count=1, result_set_bytes=20, datapoint_count=2
            ),
        }
        combined = first + ResultsResponse.from_dict(second_data)
        assert len(combined.get_rows()) == 3
        assert combined.result.metadata.row_count == 3
        assert combined.result.metadata.result_set_bytes == 214
        assert combined.next_uri is None
        assert combined.next_offset is None

    def test_csv_add_skips_repeated_header(self):
        first = ExecutionResultCSV(data="number\n1\n2\n", next_uri="page2", next_offset=2)
        second = ExecutionResultCSV(data="number\n3\n", next_uri=None, next_offset=None)
        combined = first + second
        assert combined.data == "number\n1\n2\n3\n"
        assert combined.next_uri is None
        assert combined.next_offset is None

    def test_csv_add_without_trailing_newline(self):
        combined = ExecutionResultCSV(data="number\n1") + ExecutionResultCSV(data="number\n2\n")
        assert combined.data == "number\n1\n2\n"

    def test_table_results(self):
        created = CreateTableResult.from_dict(
            {
                "namespace": "my_user",
                "table_name": "interest_rates",
                "full_name": "dune.my_user.interest_rates",
                "example_query": "select * from dune.my_user.interest_rates",
            }
        )
        assert created.full_name == "dune.my_user.interest_rates"
        inserted = InsertTableResult.from_dict({"rows_written": 9000, "bytes_written": 90})
        assert inserted.rows_written == 9000
        cleared = ClearTableResult.from_dict({"message": "Table dune.my_user.t cleared"})
        assert cleared.message.endswith("cleared")


class TestDuneQuery(unittest.TestCase):
    def test_from_dict(self):
        query = DuneQuery.from_dict(
            {
                "query_id": 1215383,
                "name": "Sample Query",
                "description": "",
                "tags": ["test"],
                "version": 3,
                "parameters": [{"key": "TextField", "type": "text", "value": "Plain Text"}],
                "query_engine": "v2 Dune SQL",
                "query_sql": "select '{{TextField}}' as text_field",
                "is_private": False,
                "is_archived": False,
                "is_unsaved": False,
                "owner": "bh2smith",
            }
        )
        assert query.query_id == 1215383
        assert query.params == [QueryParameter.text_type("TextField", "Plain Text")]
        assert query.meta.engine == "v2 Dune SQL"
        assert query.url() == "https://dune.com/queries/1215383"


if __name__ == "__main__":
    unittest.main()
