import datetime
import unittest

from dune_sdk.types import (
    ContentType,
    ExecutionPerformance,
    ParameterType,
    QueryParameter,
    parameter_values,
)


class TestQueryParameter(unittest.TestCase):
    def setUp(self) -> None:
        self.number_type = QueryParameter.number_type("Number", 1)
        self.text_type = QueryParameter.text_type("Text", "hello")
        self.date_type = QueryParameter.date_type("Date", datetime.datetime(2022, 3, 10))
        self.enum_type = QueryParameter.enum_type("Enum", "Option 1")
        self.multi_type = QueryParameter.enum_type("Multi", ["a1", "a2"])

    def test_constructors_and_to_dict(self):
        self.assertEqual(
            self.number_type.to_dict(),
            {"key": "Number", "type": "number", "value": "1"},
        )
        self.assertEqual(
            self.text_type.to_dict(), {"key": "Text", "type": "text", "value": "hello"}
        )
        self.assertEqual(
            self.date_type.to_dict(),
            {"key": "Date", "type": "datetime", "value": "2022-03-10 00:00:00"},
        )
        self.assertEqual(
            self.enum_type.to_dict(), {"key": "Enum", "type": "enum", "value": "Option 1"}
        )
        self.assertEqual(
            self.multi_type.to_dict(), {"key": "Multi", "type": "enum", "value": ["a1", "a2"]}
        )

    def test_date_from_string(self):
        assert QueryParameter.date_type("Date", "2022-03-10 00:00:00") == self.date_type

    def test_enum_rejects_other_types(self):
        with self.assertRaises(TypeError):
            QueryParameter.enum_type("Enum", 5)  # type: ignore[arg-type]

    def test_from_dict(self):
        for param in [
            self.number_type,
            self.text_type,
            self.date_type,
            self.enum_type,
            self.multi_type,
        ]:
            assert QueryParameter.from_dict(param.to_dict()) == param

    def test_from_dict_parses_decimal_numbers(self):
        param = QueryParameter.from_dict({"key": "Pi", "type": "number", "value": "3.14"})
        assert param.value == 3.14

    def test_hash(self):
        assert hash(self.multi_type) == hash(QueryParameter.enum_type("Multi", ("a1", "a2")))

    def test_str(self):
        assert str(self.text_type) == "Parameter(name=Text, value=hello, type=text)"

    def test_parameter_values(self):
        assert parameter_values([self.text_type, self.multi_type]) == {
            "Text": "hello",
            "Multi": ["a1", "a2"],
        }
        assert parameter_values(None) == {}


class TestEnums(unittest.TestCase):
    def test_parameter_type_from_string(self):
        assert ParameterType.from_string("list") == ParameterType.ENUM
        assert ParameterType.from_string("datetime") == ParameterType.DATE
        with self.assertRaises(ValueError):
            ParameterType.from_string("unknown")

    def test_content_types(self):
        assert ContentType.JSON.value == "application/json"
        assert ContentType.CSV.value == "text/csv"
        assert ContentType.NDJSON.value == "application/x-ndjson"

    def test_performance(self):
        assert ExecutionPerformance("large") == ExecutionPerformance.LARGE


if __name__ == "__main__":
    unittest.main()
