"""
Tests unitarios para el Row Processor.
"""
from __future__ import annotations

from unittest.mock import patch

import pytest

from app.application.services.mec_row_processor import process_csv_content, split_lines
from app.shared.exceptions.sync import CsvEmptyException


class TestSplitLines:
    def test_normalizes_line_endings_and_drops_blank_lines(self) -> None:
        assert split_lines("a\r\nb\rc\n\n  \nd") == ["a", "b", "c", "d"]


class TestProcessCsvContent:
    """Tests para process_csv_content()."""

    def test_two_rows_same_institution_and_one_broken_row(self, make_csv, make_csv_line) -> None:
        content = make_csv(
            make_csv_line(ies="1", course="100"),
            make_csv_line(ies="1", course="101", course_name="MEDICINA"),
            '2,"UNCLOSED,1,1,200',
        )

        result = process_csv_content(content, file_size=len(content))

        assert list(result.institutions) == [1]
        assert [c.code for c in result.courses] == [100, 101]
        assert len(result.errors) == 1
        assert result.errors[0].row == 4
        assert "Unbalanced quotes" in result.errors[0].message
        assert result.total_rows == 3
        assert result.file_size == len(content)

    def test_first_institution_occurrence_wins(self, make_csv, make_csv_line) -> None:
        content = make_csv(
            make_csv_line(ies="5", ies_name="PRIMEIRA"),
            make_csv_line(ies="5", ies_name="SEGUNDA", course="2"),
        )

        result = process_csv_content(content, file_size=0)

        assert result.institutions[5].name == "Primeira"

    def test_crlf_and_blank_lines(self, make_csv, make_csv_line) -> None:
        content = make_csv(make_csv_line(), "", make_csv_line(course="200"), crlf=True)

        result = process_csv_content(content, file_size=0)

        assert result.total_rows == 2
        assert len(result.courses) == 2
        assert result.errors == []

    def test_rows_with_invalid_codes_are_skipped_without_error(self, make_csv, make_csv_line) -> None:
        content = make_csv(make_csv_line(ies="abc", course="xyz"))

        result = process_csv_content(content, file_size=0)

        assert result.institutions == {}
        assert result.courses == []
        assert result.errors == []

    @pytest.mark.parametrize("content", ["", "   \n\n", "CODIGO_IES,NOME_IES\n"])
    def test_empty_file_raises(self, content: str) -> None:
        with pytest.raises(CsvEmptyException):
            process_csv_content(content, file_size=len(content))

    def test_bom_in_header_is_ignored(self, make_csv, make_csv_line) -> None:
        content = "\ufeff" + make_csv(make_csv_line(ies="9"))

        result = process_csv_content(content, file_size=0)

        assert 9 in result.institutions

    def test_warns_every_n_errors(self, make_csv) -> None:
        content = make_csv(*['"broken'] * 4)

        with patch("app.application.services.mec_row_processor.log") as mock_log:
            result = process_csv_content(content, file_size=0, warn_every=2)

        assert len(result.errors) == 4
        assert mock_log.warning.call_count == 2
