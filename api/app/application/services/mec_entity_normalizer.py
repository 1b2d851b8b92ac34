"""
Normalizador de entidades MEC.

Transforma los valores crudos de una fila CSV en NormalizedInstitution y
NormalizedCourse. Funciones puras (sin I/O), deterministas.

Reglas:
- Codigos enteros que no parsean -> None (la fila se omite sin registrar error).
- Campos de texto obligatorios vacios -> None.
- Enumeraciones codificadas pasan por tablas de lookup; un codigo numerico
  desconocido o vacio se convierte en UNSPECIFIED_LABEL en lugar de fallar.
  Un valor no numerico ya es una etiqueta (datasets recientes) y se conserva.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from app.application.services.csv_line_parser import get_column_value
from app.domain.entities.mec import NormalizedCourse, NormalizedInstitution
from app.shared.constants.mec_constants import UNSPECIFIED_LABEL


_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_WHITESPACE = re.compile(r"\s+")

LOWERCASE_CONNECTIVES = frozenset({"de", "da", "do", "das", "dos", "e", "em", "para", "com"})

ORGANIZATION_KINDS = {
    "1": "Universidade",
    "2": "Centro Universitário",
    "3": "Faculdade",
    "4": "Instituto Federal",
    "5": "Centro Federal",
}

CATEGORIES = {
    "1": "Pública Federal",
    "2": "Pública Estadual",
    "3": "Pública Municipal",
    "4": "Privada com fins lucrativos",
    "5": "Privada sem fins lucrativos",
    "6": "Especial",
}

DEGREE_KINDS = {
    "1": "Bacharelado",
    "2": "Licenciatura",
    "3": "Tecnológico",
    "4": "Bacharelado e Licenciatura",
}

MODALITIES = {
    "1": "Presencial",
    "2": "EaD",
}

STATUS_KINDS = {
    "1": "Em atividade",
    "2": "Extinto",
    "3": "Em extinção",
}


@dataclass(frozen=True)
class MecCsvRow:
    """Campos crudos canonicos de una fila, independientes de la version del dataset."""

    institution_code: str
    institution_name: str
    institution_short_name: str
    organization_kind: str
    category: str
    municipality_code: str
    municipality: str
    state_code: str
    course_code: str
    course_name: str
    degree_kind: str
    modality: str
    knowledge_area: str
    hours_load: str
    status_kind: str


# Alias de columnas por campo, en orden de preferencia.
# CSV 2022: CODIGO_IES, NOME_IES, CATEGORIA_ADMINISTRATIVA, ORGANIZACAO_ACADEMICA,
# CODIGO_CURSO, NOME_CURSO, GRAU, AREA_OCDE, MODALIDADE, SITUACAO_CURSO,
# CARGA_HORARIA, AREA_OCDE_CINE, CODIGO_MUNICIPIO, MUNICIPIO, UF
COLUMN_ALIASES: Dict[str, Sequence[str]] = {
    "institution_code": ("CODIGO_IES", "CO_IES"),
    "institution_name": ("NOME_IES", "NO_IES"),
    "institution_short_name": ("SG_IES", "SIGLA_IES"),
    "organization_kind": ("ORGANIZACAO_ACADEMICA", "TP_ORGANIZACAO_ACADEMICA", "TP_ORGANIZACAO"),
    "category": ("CATEGORIA_ADMINISTRATIVA", "TP_CATEGORIA_ADMINISTRATIVA", "TP_CATEGORIA"),
    "municipality_code": ("CODIGO_MUNICIPIO", "CO_MUNICIPIO_IES", "CO_MUNICIPIO"),
    "municipality": ("MUNICIPIO", "NO_MUNICIPIO_IES", "NO_MUNICIPIO"),
    "state_code": ("UF", "SG_UF_IES", "SG_UF"),
    "course_code": ("CODIGO_CURSO", "CO_CURSO"),
    "course_name": ("NOME_CURSO", "NO_CURSO"),
    "degree_kind": ("GRAU", "TP_GRAU_ACADEMICO", "TP_GRAU"),
    "modality": ("MODALIDADE", "TP_MODALIDADE_ENSINO", "TP_MODALIDADE"),
    "knowledge_area": ("AREA_OCDE_CINE", "AREA_OCDE", "NO_CINE_AREA_GERAL", "NO_AREA"),
    "hours_load": ("CARGA_HORARIA", "QT_CARGA_HORARIA_TOTAL", "QT_CARGA_HORARIA"),
    "status_kind": ("SITUACAO_CURSO", "CO_SITUACAO_CURSO", "CO_SITUACAO"),
}


def map_row(values: Sequence[str], column_map: Dict[str, int]) -> MecCsvRow:
    """Construye un MecCsvRow resolviendo los alias de columnas."""
    return MecCsvRow(**{
        field_name: get_column_value(values, column_map, *aliases)
        for field_name, aliases in COLUMN_ALIASES.items()
    })


def parse_int(value: Optional[str]) -> Optional[int]:
    """
    Parseo de enteros por digitos iniciales ("100", " 100 ", "100.0" -> 100).
    Retorna None si no hay digitos al inicio.
    """
    if not value:
        return None
    match = _LEADING_INT.match(value)
    if not match:
        return None
    return int(match.group(1))


def parse_optional_positive_int(value: Optional[str]) -> Optional[int]:
    """Enteros opcionales: 0 o no parseable -> None."""
    parsed = parse_int(value)
    return parsed or None


def normalize_text(text: Optional[str]) -> str:
    """Trim, colapsa espacios y aplica title case (conectores en minuscula)."""
    if not text:
        return ""
    words = _WHITESPACE.split(text.strip())
    normalized = []
    for word in words:
        lower = word.lower()
        if lower in LOWERCASE_CONNECTIVES:
            normalized.append(lower)
        else:
            normalized.append(word[:1].upper() + word[1:].lower())
    return " ".join(normalized)


def map_coded_value(value: str, table: Dict[str, str]) -> str:
    """
    Resuelve un valor codificado contra su tabla de lookup.

    - Codigo conocido -> etiqueta.
    - Vacio o codigo numerico desconocido -> UNSPECIFIED_LABEL.
    - Texto no numerico -> se conserva normalizado (ya es etiqueta).
    """
    value = (value or "").strip()
    if not value:
        return UNSPECIFIED_LABEL
    if value in table:
        return table[value]
    if parse_int(value) is not None:
        return UNSPECIFIED_LABEL
    return normalize_text(value)


def normalize_institution(row: MecCsvRow) -> Optional[NormalizedInstitution]:
    """Institucion de la fila o None si faltan codigo, nombre o UF."""
    code = parse_int(row.institution_code)
    if code is None or code <= 0:
        return None
    if not row.institution_name.strip() or not row.state_code.strip():
        return None

    return NormalizedInstitution(
        code=code,
        name=normalize_text(row.institution_name),
        short_name=row.institution_short_name.strip().upper() or None,
        organization_kind=map_coded_value(row.organization_kind, ORGANIZATION_KINDS),
        category=map_coded_value(row.category, CATEGORIES),
        state_code=row.state_code.strip().upper(),
        municipality=normalize_text(row.municipality) or None,
        municipality_code=parse_optional_positive_int(row.municipality_code),
    )


def normalize_course(row: MecCsvRow) -> Optional[NormalizedCourse]:
    """Curso de la fila o None si faltan codigo de curso, codigo de IES o nombre."""
    code = parse_int(row.course_code)
    institution_code = parse_int(row.institution_code)
    if code is None or institution_code is None or not row.course_name.strip():
        return None

    return NormalizedCourse(
        code=code,
        institution_code=institution_code,
        name=normalize_text(row.course_name),
        degree_kind=map_coded_value(row.degree_kind, DEGREE_KINDS),
        modality=map_coded_value(row.modality, MODALITIES),
        knowledge_area=normalize_text(row.knowledge_area) or None,
        hours_load=parse_optional_positive_int(row.hours_load),
        status_kind=map_coded_value(row.status_kind, STATUS_KINDS),
    )
