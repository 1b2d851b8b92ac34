"""
Row Processor del dataset MEC.

Recorre el texto CSV ya decodificado y produce instituciones unicas, cursos y
errores por fila. Un error en una fila nunca aborta la corrida.
"""
from typing import Dict, List

from loguru import logger

from app.application.services.csv_line_parser import build_column_map, parse_csv_line
from app.application.services.mec_entity_normalizer import (
    map_row,
    normalize_course,
    normalize_institution,
)
from app.domain.entities.mec import (
    NormalizedCourse,
    NormalizedInstitution,
    ParseResult,
    SyncError,
)
from app.shared.exceptions.sync import CsvEmptyException


log = logger.bind(context="MecRowProcessor")


def split_lines(content: str) -> List[str]:
    """Normaliza CRLF/CR a LF y descarta lineas en blanco."""
    normalized = content.replace("\r\n", "\n").replace("\r", "\n")
    return [line for line in normalized.split("\n") if line.strip()]


def process_csv_content(
    content: str,
    *,
    file_size: int,
    delimiter: str = ",",
    warn_every: int = 1000,
) -> ParseResult:
    """
    Procesa el CSV completo.

    Args:
        content: texto decodificado (header + filas)
        file_size: tamano en bytes del archivo original
        delimiter: separador de columnas
        warn_every: cada cuantos errores acumulados se emite un warning

    Raises:
        CsvEmptyException: si no hay al menos header + una fila de datos
    """
    lines = split_lines(content)
    if len(lines) < 2:
        raise CsvEmptyException()

    header = parse_csv_line(lines[0], delimiter)
    column_map = build_column_map(header)
    log.info(f"CSV con {len(lines) - 1} filas y {len(header)} columnas")

    institutions: Dict[int, NormalizedInstitution] = {}
    courses: List[NormalizedCourse] = []
    errors: List[SyncError] = []

    for index in range(1, len(lines)):
        # El header es la linea 1
        row_number = index + 1
        try:
            values = parse_csv_line(lines[index], delimiter)
            row = map_row(values, column_map)

            institution = normalize_institution(row)
            if institution is not None and institution.code not in institutions:
                institutions[institution.code] = institution

            course = normalize_course(row)
            if course is not None:
                courses.append(course)
        except Exception as e:
            errors.append(SyncError(row=row_number, message=str(e)))
            if warn_every > 0 and len(errors) % warn_every == 0:
                log.warning(f"{len(errors)} errores de parseo acumulados (ultima fila: {row_number})")

    log.info(
        f"CSV procesado: {len(institutions)} instituciones, "
        f"{len(courses)} cursos, {len(errors)} errores"
    )

    return ParseResult(
        institutions=institutions,
        courses=courses,
        errors=errors,
        total_rows=len(lines) - 1,
        file_size=file_size,
    )
