"""
Normalizacion de encoding del CSV del MEC.

El exportador del MEC emite UTF-8 o Latin-1 segun la herramienta/version que
genero el archivo. Se intenta UTF-8 primero; si aparece el caracter de
reemplazo (U+FFFD) se re-decodifica el buffer completo como ISO-8859-1.
"""
from typing import Tuple

from loguru import logger


REPLACEMENT_CHAR = "\ufffd"

UTF8 = "utf-8"
LATIN1 = "latin-1"

log = logger.bind(context="MecEncoding")


def decode_csv_bytes(buffer: bytes) -> Tuple[str, str]:
    """
    Convierte el buffer crudo a texto.

    Nunca lanza excepciones: Latin-1 mapea cualquier byte a un code point.

    Returns:
        (texto, encoding detectado)
    """
    text = buffer.decode(UTF8, errors="replace")
    if REPLACEMENT_CHAR not in text:
        log.info("CSV detectado como UTF-8")
        return text, UTF8

    log.info("CSV detectado como Latin-1, convertido a UTF-8")
    return buffer.decode(LATIN1), LATIN1
