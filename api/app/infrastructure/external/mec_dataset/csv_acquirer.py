"""
Adquisicion del CSV del MEC con cache local en disco.

- Archivo local con menos de `cache_validity_days` de antiguedad: se usa sin red.
- Si no: descarga con el navegador, valida que no sea HTML y reemplaza el
  archivo local completo (escritura a temporal + os.replace).
- Un fallo de descarga es fatal; no se cae a una copia vencida.
"""
import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Protocol

from loguru import logger

from app.core.config import settings
from app.shared.exceptions.sync import CsvAcquisitionException


log = logger.bind(context="MecCsvAcquirer")

HTML_SNIFF_BYTES = 100


class CsvDownloader(Protocol):
    async def download(self, url: str) -> bytes:
        ...


@dataclass(frozen=True)
class AcquiredCsv:
    """Bytes del CSV y su procedencia."""

    content: bytes
    from_cache: bool
    source_url: str

    @property
    def size(self) -> int:
        return len(self.content)


def is_html_content(content: bytes) -> bool:
    """True si los primeros bytes parecen HTML (pagina de error o challenge)."""
    start = content[:HTML_SNIFF_BYTES].decode("utf-8", errors="ignore").lower()
    return "<!doctype" in start or "<html" in start


class MecCsvAcquirer:
    """Entrega los bytes crudos del CSV, desde disco o desde el navegador."""

    def __init__(
        self,
        downloader: CsvDownloader,
        cache_path: Optional[str] = None,
        cache_validity_days: Optional[int] = None,
        csv_url: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.downloader = downloader
        self.cache_path = Path(cache_path or settings.MEC_CSV_CACHE_PATH)
        days = settings.MEC_CSV_CACHE_DAYS if cache_validity_days is None else cache_validity_days
        self.cache_validity_seconds = days * 24 * 3600
        self.csv_url = csv_url or settings.MEC_CSV_URL
        self._clock = clock

    def is_cache_fresh(self) -> bool:
        """True si existe el archivo local y su mtime esta dentro de la ventana."""
        try:
            mtime = self.cache_path.stat().st_mtime
        except FileNotFoundError:
            return False
        return mtime > self._clock() - self.cache_validity_seconds

    async def acquire(self, url: Optional[str] = None) -> AcquiredCsv:
        """
        Obtiene el CSV.

        Raises:
            CsvAcquisitionException: descarga fallida o respuesta HTML
        """
        url = url or self.csv_url

        if self.is_cache_fresh():
            log.info(f"Usando CSV en cache local: {self.cache_path}")
            return AcquiredCsv(content=self.cache_path.read_bytes(), from_cache=True, source_url=url)

        log.info(f"Descargando CSV con navegador: {url}")
        content = await self.downloader.download(url)

        if is_html_content(content):
            raise CsvAcquisitionException(
                "Received HTML instead of CSV - anti-bot protection may still be blocking",
                url,
            )

        log.info(f"Descargados {len(content) / 1024 / 1024:.2f} MB")
        self._write_cache(content)
        return AcquiredCsv(content=content, from_cache=False, source_url=url)

    def _write_cache(self, content: bytes) -> None:
        """Reemplaza el archivo local completo. Un fallo aqui solo se registra."""
        tmp_path = None
        try:
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self.cache_path.parent),
                prefix=f".{self.cache_path.name}.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "wb") as tmp_file:
                tmp_file.write(content)
            os.replace(tmp_path, self.cache_path)
            tmp_path = None
            log.info(f"CSV guardado en cache local: {self.cache_path}")
        except OSError as e:
            log.warning(f"No se pudo guardar el CSV en cache: {e}")
        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
