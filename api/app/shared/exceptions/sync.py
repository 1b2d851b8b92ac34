"""
Excepciones del pipeline de sincronizacion MEC.

Taxonomia:
- Fila (recuperable): CsvLineParseException. El Row Processor la captura y la
  registra como SyncError; nunca aborta la corrida.
- Adquisicion (fatal): CsvAcquisitionException.
- Contencion de lock (fatal, inmediata): SyncInProgressException.
- Archivo vacio (fatal): CsvEmptyException.
"""
from typing import Optional

from app.shared.exceptions.base import AppException


class SyncInProgressException(AppException):
    """Otra corrida tiene el lock distribuido. No hay cola ni reintento."""

    def __init__(self, lock_key: str):
        super().__init__(
            message="Sync already in progress. Please wait for the current sync to complete.",
            status_code=409,
            error_code="SYNC_IN_PROGRESS",
            details={"lock_key": lock_key},
        )


class CsvAcquisitionException(AppException):
    """No fue posible obtener el CSV (timeout, bloqueo anti-bot, HTML en lugar de CSV)."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(
            message=message,
            status_code=502,
            error_code="CSV_ACQUISITION_FAILED",
            details={"url": url} if url else None,
        )


class CsvLineParseException(AppException):
    """Linea con comillas desbalanceadas."""

    def __init__(self, message: str, line: str):
        super().__init__(
            message=message,
            status_code=422,
            error_code="CSV_LINE_PARSE_ERROR",
            details={"line_preview": line[:120]},
        )


class CsvEmptyException(AppException):
    """El archivo no tiene filas de datos."""

    def __init__(self):
        super().__init__(
            message="CSV file is empty or has no data rows",
            status_code=422,
            error_code="CSV_EMPTY",
        )
