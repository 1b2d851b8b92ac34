"""
Configuracion de loguru para el Sync Engine.

Cada componente registra con un tag de contexto fijo:
    log = logger.bind(context="MecSync")
    log.info("Iniciando sync...")

El formato imprime ese tag para poder filtrar una corrida completa en el archivo.
"""
import sys

from loguru import logger

from app.core.config import settings


LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[context]}</cyan> | "
    "<level>{message}</level>"
)

_configured = False


def setup_logging(log_level: str | None = None, log_file: str | None = None) -> None:
    """
    Configura los sinks de loguru (stderr + archivo rotativo).

    Idempotente: llamadas posteriores no duplican sinks.

    Args:
        log_level: Override de settings.LOG_LEVEL
        log_file: Override de settings.LOG_FILE. Cadena vacia desactiva el archivo.
    """
    global _configured
    if _configured:
        return

    level = (log_level or settings.LOG_LEVEL).upper()
    file_path = settings.LOG_FILE if log_file is None else log_file

    logger.remove()
    logger.configure(extra={"context": "app"})
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)

    if file_path:
        logger.add(
            file_path,
            rotation="500 MB",
            retention="10 days",
            level=level,
            format=LOG_FORMAT,
        )

    _configured = True
    logger.bind(context="app").debug(f"Logging configurado (nivel={level}, archivo={file_path or '-'})")
