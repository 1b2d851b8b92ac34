"""
Parser de lineas CSV del dataset MEC.

Se parsea linea por linea (y no con el modulo csv sobre el archivo completo)
para que una linea malformada se registre como error de fila sin abortar el
resto de la corrida.
"""
from typing import Dict, List, Sequence

from app.shared.exceptions.sync import CsvLineParseException


QUOTE = '"'
BOM = "\ufeff"


def parse_csv_line(line: str, delimiter: str = ",") -> List[str]:
    """
    Divide una linea en valores respetando comillas.

    - El delimitador dentro de comillas es literal.
    - `""` dentro de un campo entrecomillado colapsa a `"`.
    - Los valores se devuelven sin espacios al inicio/fin.

    Raises:
        CsvLineParseException: si una seccion entrecomillada queda abierta.
    """
    result: List[str] = []
    current: List[str] = []
    in_quotes = False
    i = 0
    length = len(line)

    while i < length:
        char = line[i]
        if char == QUOTE:
            if in_quotes and i + 1 < length and line[i + 1] == QUOTE:
                current.append(QUOTE)
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            result.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1

    if in_quotes:
        raise CsvLineParseException("Unbalanced quotes in CSV line", line)

    result.append("".join(current).strip())
    return result


def build_column_map(header: Sequence[str]) -> Dict[str, int]:
    """
    Mapa nombre de columna -> indice.
    Normaliza nombres (quita BOM, trim, mayusculas); ante duplicados gana el primero.
    """
    column_map: Dict[str, int] = {}
    for index, column in enumerate(header):
        normalized = column.lstrip(BOM).strip().upper()
        column_map.setdefault(normalized, index)
    return column_map


def get_column_value(values: Sequence[str], column_map: Dict[str, int], *keys: str) -> str:
    """
    Primer valor no vacio entre las columnas candidatas (en orden).
    Retorna "" si ninguna existe o el indice queda fuera de la fila.
    """
    for key in keys:
        index = column_map.get(key)
        if index is None or index >= len(values):
            continue
        value = values[index]
        if value:
            return value
    return ""
