"""
Utilidades para manejo de fechas y horas.
"""
from datetime import datetime, timezone
from typing import Optional


class DateTimeUtils:
    """Clase de utilidades para operaciones con fechas y horas."""

    @staticmethod
    def now_utc() -> datetime:
        """
        Obtiene la fecha y hora actual en UTC.

        Returns:
            datetime: Fecha y hora actual en UTC (aware)
        """
        return datetime.now(timezone.utc)

    @staticmethod
    def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
        """
        Normaliza un datetime a UTC aware.

        SQLite devuelve datetimes naive aun con DateTime(timezone=True);
        se asumen en UTC.
        """
        if dt is None:
            return None
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    @staticmethod
    def elapsed_ms(start: datetime, end: Optional[datetime] = None) -> int:
        """Milisegundos transcurridos entre dos instantes (end por defecto: ahora)."""
        end = end or DateTimeUtils.now_utc()
        delta = DateTimeUtils.ensure_utc(end) - DateTimeUtils.ensure_utc(start)
        return int(delta.total_seconds() * 1000)
