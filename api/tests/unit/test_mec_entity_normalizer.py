"""
Tests unitarios para el normalizador de entidades MEC.

Funciones puras: no requieren base de datos ni mocks.
"""
from __future__ import annotations

from dataclasses import replace

import pytest

from app.application.services.csv_line_parser import build_column_map
from app.application.services.mec_entity_normalizer import (
    MecCsvRow,
    map_row,
    normalize_course,
    normalize_institution,
    normalize_text,
    parse_int,
)
from app.shared.constants.mec_constants import UNSPECIFIED_LABEL


def _row(**overrides) -> MecCsvRow:
    base = MecCsvRow(
        institution_code="1",
        institution_name="UNIVERSIDADE FEDERAL DE MATO GROSSO",
        institution_short_name="ufmt",
        organization_kind="1",
        category="1",
        municipality_code="5103403",
        municipality="CUIABA",
        state_code="mt",
        course_code="100",
        course_name="DIREITO",
        degree_kind="1",
        modality="1",
        knowledge_area="Direito",
        hours_load="3700",
        status_kind="1",
    )
    return replace(base, **overrides)


class TestParseInt:
    """Tests para parse_int()."""

    @pytest.mark.parametrize("value,expected", [
        ("100", 100),
        (" 100 ", 100),
        ("100.0", 100),
        ("12abc", 12),
        ("-3", -3),
        ("abc", None),
        ("", None),
        (None, None),
    ])
    def test_leading_digits(self, value, expected) -> None:
        assert parse_int(value) == expected


class TestNormalizeText:
    """Tests para normalize_text()."""

    def test_title_case_keeps_connectives_lowercase(self) -> None:
        assert normalize_text("UNIVERSIDADE FEDERAL DE MATO GROSSO") == "Universidade Federal de Mato Grosso"

    def test_collapses_whitespace(self) -> None:
        assert normalize_text("  ciencia   DA  computacao ") == "Ciencia da Computacao"

    def test_empty(self) -> None:
        assert normalize_text("") == ""
        assert normalize_text(None) == ""


class TestNormalizeInstitution:
    """Tests para normalize_institution()."""

    def test_valid_row(self) -> None:
        institution = normalize_institution(_row())

        assert institution is not None
        assert institution.code == 1
        assert institution.name == "Universidade Federal de Mato Grosso"
        assert institution.short_name == "UFMT"
        assert institution.state_code == "MT"
        assert institution.organization_kind == "Universidade"
        assert institution.category == "Pública Federal"
        assert institution.municipality == "Cuiaba"
        assert institution.municipality_code == 5103403

    def test_unparseable_code_returns_none(self) -> None:
        assert normalize_institution(_row(institution_code="abc")) is None

    def test_non_positive_code_returns_none(self) -> None:
        assert normalize_institution(_row(institution_code="0")) is None

    def test_missing_name_or_state_returns_none(self) -> None:
        assert normalize_institution(_row(institution_name="  ")) is None
        assert normalize_institution(_row(state_code="")) is None

    def test_unknown_code_maps_to_unspecified(self) -> None:
        institution = normalize_institution(_row(organization_kind="99", category=""))

        assert institution.organization_kind == UNSPECIFIED_LABEL
        assert institution.category == UNSPECIFIED_LABEL

    def test_textual_value_is_kept_as_label(self) -> None:
        institution = normalize_institution(_row(organization_kind="CENTRO UNIVERSITÁRIO"))

        assert institution.organization_kind == "Centro Universitário"

    def test_optional_fields_empty_become_none(self) -> None:
        institution = normalize_institution(
            _row(institution_short_name="", municipality="", municipality_code="0")
        )

        assert institution.short_name is None
        assert institution.municipality is None
        assert institution.municipality_code is None


class TestNormalizeCourse:
    """Tests para normalize_course()."""

    def test_valid_row(self) -> None:
        course = normalize_course(_row(degree_kind="2", modality="2", status_kind="3"))

        assert course is not None
        assert course.code == 100
        assert course.institution_code == 1
        assert course.name == "Direito"
        assert course.degree_kind == "Licenciatura"
        assert course.modality == "EaD"
        assert course.status_kind == "Em extinção"
        assert course.hours_load == 3700

    def test_missing_codes_or_name_return_none(self) -> None:
        assert normalize_course(_row(course_code="")) is None
        assert normalize_course(_row(institution_code="x")) is None
        assert normalize_course(_row(course_name=" ")) is None

    def test_hours_zero_becomes_none(self) -> None:
        assert normalize_course(_row(hours_load="0")).hours_load is None

    def test_deterministic(self) -> None:
        row = _row()
        assert normalize_course(row) == normalize_course(row)


class TestMapRow:
    """Tests para map_row() con alias de distintas versiones del dataset."""

    def test_resolves_legacy_column_names(self) -> None:
        header = ["CO_IES", "NO_IES", "SG_UF_IES", "CO_CURSO", "NO_CURSO", "TP_GRAU_ACADEMICO"]
        values = ["7", "FACULDADE X", "SP", "55", "MEDICINA", "1"]

        row = map_row(values, build_column_map(header))

        assert row.institution_code == "7"
        assert row.institution_name == "FACULDADE X"
        assert row.state_code == "SP"
        assert row.course_code == "55"
        assert row.degree_kind == "1"
        assert row.modality == ""
