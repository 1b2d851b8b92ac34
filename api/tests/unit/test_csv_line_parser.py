"""
Tests unitarios para el parser de lineas CSV y el decodificador de encoding.
"""
from __future__ import annotations

import pytest
from loguru import logger

from app.application.services.csv_line_parser import (
    build_column_map,
    get_column_value,
    parse_csv_line,
)
from app.application.services.encoding_normalizer import LATIN1, UTF8, decode_csv_bytes
from app.shared.exceptions.sync import CsvLineParseException


class TestParseCsvLine:
    """Tests para parse_csv_line()."""

    def test_splits_simple_line(self) -> None:
        assert parse_csv_line("a,b,c") == ["a", "b", "c"]

    def test_quoted_delimiter_is_literal(self) -> None:
        assert parse_csv_line('1,"SAO PAULO, SP",X') == ["1", "SAO PAULO, SP", "X"]

    def test_escaped_quote_collapses(self) -> None:
        assert parse_csv_line('"a""b",c') == ['a"b', "c"]

    def test_values_are_trimmed(self) -> None:
        assert parse_csv_line("  a , b ,c  ") == ["a", "b", "c"]

    def test_empty_line_returns_single_empty_value(self) -> None:
        assert parse_csv_line("") == [""]

    def test_trailing_delimiter_yields_empty_last_value(self) -> None:
        assert parse_csv_line("a,b,") == ["a", "b", ""]

    def test_custom_delimiter(self) -> None:
        assert parse_csv_line("a;b,c;d", delimiter=";") == ["a", "b,c", "d"]

    def test_unbalanced_quotes_raise(self) -> None:
        with pytest.raises(CsvLineParseException) as exc_info:
            parse_csv_line('1,"abc,2')

        assert exc_info.value.error_code == "CSV_LINE_PARSE_ERROR"
        assert "Unbalanced quotes" in str(exc_info.value)


class TestColumnMap:
    """Tests para build_column_map() y get_column_value()."""

    def test_strips_bom_and_uppercases(self) -> None:
        column_map = build_column_map(["\ufeffcodigo_ies", " nome_ies "])

        assert column_map == {"CODIGO_IES": 0, "NOME_IES": 1}

    def test_first_duplicate_wins(self) -> None:
        column_map = build_column_map(["UF", "X", "UF"])

        assert column_map["UF"] == 0

    def test_get_column_value_returns_first_non_empty(self) -> None:
        column_map = {"CO_IES": 0, "CODIGO_IES": 1}
        values = ["", "42"]

        assert get_column_value(values, column_map, "CO_IES", "CODIGO_IES") == "42"

    def test_get_column_value_missing_or_out_of_range(self) -> None:
        column_map = {"UF": 5}

        assert get_column_value(["a"], column_map, "UF") == ""
        assert get_column_value(["a"], column_map, "NOPE") == ""


class TestDecodeCsvBytes:
    """Tests para decode_csv_bytes()."""

    def test_valid_utf8_is_kept(self) -> None:
        text, encoding = decode_csv_bytes("São Paulo".encode("utf-8"))

        assert text == "São Paulo"
        assert encoding == UTF8

    def test_latin1_bytes_are_redecoded(self) -> None:
        text, encoding = decode_csv_bytes("Educação".encode("latin-1"))

        assert text == "Educação"
        assert encoding == LATIN1
        assert "\ufffd" not in text

    def test_bom_is_preserved(self) -> None:
        text, _ = decode_csv_bytes(b"\xef\xbb\xbfA,B")

        assert text.startswith("\ufeff")

    def test_never_raises_on_arbitrary_bytes(self) -> None:
        text, encoding = decode_csv_bytes(bytes(range(256)))

        assert isinstance(text, str)
        assert encoding == LATIN1

    def test_logs_under_encoding_context(self) -> None:
        records = []
        sink_id = logger.add(lambda message: records.append(message.record), level="INFO")
        try:
            decode_csv_bytes("Educação".encode("latin-1"))
        finally:
            logger.remove(sink_id)

        assert [r["extra"].get("context") for r in records] == ["MecEncoding"]
        assert "Latin-1" in records[0]["message"]
