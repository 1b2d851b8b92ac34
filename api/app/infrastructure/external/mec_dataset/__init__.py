"""
Fuente externa: dataset de cursos de graduacion del MEC (dados abertos).
"""
from app.infrastructure.external.mec_dataset.browser_downloader import BrowserCsvDownloader
from app.infrastructure.external.mec_dataset.csv_acquirer import (
    AcquiredCsv,
    MecCsvAcquirer,
    is_html_content,
)

__all__ = [
    "AcquiredCsv",
    "BrowserCsvDownloader",
    "MecCsvAcquirer",
    "is_html_content",
]
