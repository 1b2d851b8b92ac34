"""
Servicios de aplicacion.

Transformaciones puras del CSV del MEC: decodificacion, parseo de lineas,
normalizacion de entidades y procesamiento fila a fila. No realizan I/O.
"""
from app.application.services.encoding_normalizer import decode_csv_bytes
from app.application.services.csv_line_parser import (
    parse_csv_line,
    build_column_map,
    get_column_value,
)
from app.application.services.mec_entity_normalizer import (
    MecCsvRow,
    map_row,
    normalize_institution,
    normalize_course,
)
from app.application.services.mec_row_processor import process_csv_content

__all__ = [
    # Encoding
    "decode_csv_bytes",
    # Parser de lineas
    "parse_csv_line",
    "build_column_map",
    "get_column_value",
    # Normalizacion
    "MecCsvRow",
    "map_row",
    "normalize_institution",
    "normalize_course",
    # Procesamiento
    "process_csv_content",
]
