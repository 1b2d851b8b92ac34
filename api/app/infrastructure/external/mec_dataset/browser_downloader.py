"""
Descarga del CSV del MEC con un Chrome real (Selenium).

El portal de datos abiertos del MEC esta detras de un challenge anti-bot que
rechaza clientes HTTP simples. El flujo:

1. Abrir el sitio principal para obtener cookies de sesion.
2. Si aparece la pagina de challenge, esperar (WebDriverWait) a que se resuelva.
3. Pedir el CSV con fetch() desde dentro de la pagina: mismas cookies y misma
   huella TLS del navegador. El cuerpo vuelve en base64 junto al status HTTP.
4. Si el cuerpo es otra pagina de challenge, navegar al CSV, esperar una vez
   mas y reintentar el fetch una sola vez.

Cada intento usa su propia sesion de Chrome, que se cierra siempre. El flujo
bloqueante corre en un pool de un solo thread ("mec-browser-N"): el event loop
sigue libre y nunca hay dos Chrome abiertos a la vez en el proceso.
"""
import asyncio
import base64
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, TypeVar

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.support.ui import WebDriverWait
from loguru import logger

from app.core.config import settings
from app.shared.exceptions.sync import CsvAcquisitionException


T = TypeVar("T")

log = logger.bind(context="MecBrowser")

BROWSER_THREAD_PREFIX = "mec-browser-"

_browser_pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix=BROWSER_THREAD_PREFIX)

CHALLENGE_MARKERS = (
    "Just a moment",
    "Checking your browser",
    "cf-spinner",
    "Verifying you are human",
    "challenge-platform",
)

# Bytes del cuerpo que se inspeccionan buscando marcadores de challenge
CHALLENGE_SNIFF_BYTES = 64 * 1024

# Ejecutado con execute_async_script: el ultimo argumento es el callback.
FETCH_CSV_SCRIPT = """
const url = arguments[0];
const done = arguments[arguments.length - 1];
fetch(url, {credentials: 'include', cache: 'no-store'})
  .then(async (response) => {
    const bytes = new Uint8Array(await response.arrayBuffer());
    let binary = '';
    const step = 0x8000;
    for (let i = 0; i < bytes.length; i += step) {
      binary += String.fromCharCode.apply(null, bytes.subarray(i, i + step));
    }
    done({status: response.status, body: btoa(binary)});
  })
  .catch((error) => done({status: 0, error: String(error)}));
"""

# Se inyecta antes de cualquier script de la pagina (CDP)
STEALTH_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', {get: () => undefined});
Object.defineProperty(navigator, 'languages', {get: () => ['pt-BR', 'pt', 'en-US', 'en']});
Object.defineProperty(navigator, 'plugins', {get: () => [1, 2, 3, 4, 5]});
window.chrome = window.chrome || {runtime: {}};
"""


async def run_in_browser_thread(func: Callable[..., T], *args: Any, timeout: float) -> T:
    """
    Corre `func` en el thread del navegador con un limite total en segundos.

    El tiempo en cola detras de otra sesion cuenta para el limite. Al expirar
    el thread sigue hasta que Selenium suelte; el caller recibe
    asyncio.TimeoutError de inmediato.
    """
    loop = asyncio.get_running_loop()
    return await asyncio.wait_for(loop.run_in_executor(_browser_pool, func, *args), timeout=timeout)


def is_challenge_page(content: str) -> bool:
    """True si el HTML corresponde a la pagina de challenge anti-bot."""
    return any(marker in content for marker in CHALLENGE_MARKERS)


def is_challenge_body(body: bytes) -> bool:
    """Igual que is_challenge_page pero sobre el cuerpo crudo descargado."""
    return is_challenge_page(body[:CHALLENGE_SNIFF_BYTES].decode("utf-8", errors="ignore"))


class BrowserCsvDownloader:
    """
    Descarga el CSV dentro de una sesion de Chrome configurada como navegador real.

    `driver_factory` permite inyectar un driver falso en tests.
    """

    def __init__(
        self,
        site_url: Optional[str] = None,
        headless: Optional[bool] = None,
        user_agent: Optional[str] = None,
        accept_language: Optional[str] = None,
        window_size: Optional[str] = None,
        page_load_timeout: Optional[int] = None,
        challenge_timeout: Optional[int] = None,
        download_timeout: Optional[int] = None,
        acquisition_timeout: Optional[int] = None,
        driver_factory: Optional[Callable[[], Any]] = None,
    ):
        self.site_url = site_url or settings.MEC_SITE_URL
        self.headless = settings.SELENIUM_HEADLESS if headless is None else headless
        self.user_agent = user_agent or settings.MEC_BROWSER_USER_AGENT
        self.accept_language = accept_language or settings.MEC_BROWSER_ACCEPT_LANGUAGE
        self.window_size = window_size or settings.MEC_BROWSER_WINDOW_SIZE
        self.page_load_timeout = page_load_timeout or settings.MEC_PAGE_LOAD_TIMEOUT
        self.challenge_timeout = challenge_timeout or settings.MEC_CHALLENGE_TIMEOUT
        self.download_timeout = download_timeout or settings.MEC_DOWNLOAD_TIMEOUT
        self.acquisition_timeout = acquisition_timeout or settings.MEC_ACQUISITION_TIMEOUT
        self._driver_factory = driver_factory or self.create_driver

    def build_options(self) -> Options:
        """Opciones de Chrome para parecer un navegador de escritorio."""
        opts = Options()

        if self.headless:
            opts.add_argument("--headless=new")
            log.info("Chrome iniciando en modo headless")
        else:
            log.info("Chrome iniciando con GUI (desarrollo)")

        opts.add_argument("--no-sandbox")
        opts.add_argument("--disable-dev-shm-usage")
        opts.add_argument("--disable-gpu")
        opts.add_argument(f"--window-size={self.window_size}")
        opts.add_argument(f"--user-agent={self.user_agent}")
        opts.add_argument(f"--lang={self.accept_language.split(',')[0]}")
        opts.add_argument("--disable-blink-features=AutomationControlled")
        opts.add_experimental_option("excludeSwitches", ["enable-automation"])
        opts.add_experimental_option("useAutomationExtension", False)
        return opts

    def create_driver(self) -> webdriver.Chrome:
        """Crea el ChromeDriver y aplica los parches de stealth via CDP."""
        driver = webdriver.Chrome(options=self.build_options())
        driver.execute_cdp_cmd("Page.addScriptToEvaluateOnNewDocument", {"source": STEALTH_SCRIPT})
        driver.execute_cdp_cmd("Network.enable", {})
        driver.execute_cdp_cmd(
            "Network.setExtraHTTPHeaders",
            {"headers": {"Accept-Language": self.accept_language}},
        )
        return driver

    @contextmanager
    def browser_session(self) -> Iterator[Any]:
        """Sesion de Chrome que se cierra en cualquier salida."""
        driver = self._driver_factory()
        try:
            driver.set_page_load_timeout(self.page_load_timeout)
            driver.set_script_timeout(self.download_timeout)
            yield driver
        finally:
            try:
                driver.quit()
                log.debug("Chrome cerrado")
            except Exception as e:
                log.error(f"Error al cerrar driver: {e}")

    def wait_for_challenge(self, driver: Any, url: str) -> None:
        """Si la pagina actual es el challenge, espera a que se resuelva."""
        if not is_challenge_page(driver.page_source):
            return

        log.info("Challenge anti-bot detectado, esperando resolucion...")
        try:
            WebDriverWait(driver, self.challenge_timeout).until(
                lambda d: not is_challenge_page(d.page_source)
            )
        except TimeoutException as e:
            raise CsvAcquisitionException(
                f"Anti-bot challenge not resolved after {self.challenge_timeout}s",
                url,
            ) from e
        log.info("Challenge superado")

    def fetch_in_page(self, driver: Any, url: str) -> bytes:
        """fetch() del CSV desde el contexto de la pagina actual."""
        result = driver.execute_async_script(FETCH_CSV_SCRIPT, url)
        if not isinstance(result, dict):
            raise CsvAcquisitionException("In-page fetch returned no result", url)
        if result.get("error"):
            raise CsvAcquisitionException(f"In-page fetch failed: {result['error']}", url)

        status = int(result.get("status") or 0)
        if not 200 <= status < 300:
            raise CsvAcquisitionException(f"CSV request returned HTTP {status}", url)

        body = base64.b64decode(result.get("body") or "")
        if not body:
            raise CsvAcquisitionException("CSV response body is empty", url)
        return body

    def download_blocking(self, url: str) -> bytes:
        """Flujo completo y bloqueante. Corre en el pool del navegador."""
        try:
            with self.browser_session() as driver:
                log.info(f"Abriendo sitio para cookies de sesion: {self.site_url}")
                driver.get(self.site_url)
                self.wait_for_challenge(driver, self.site_url)

                log.info(f"Solicitando CSV: {url}")
                body = self.fetch_in_page(driver, url)

                if is_challenge_body(body):
                    log.warning("Segundo challenge en la respuesta del CSV, reintentando una vez...")
                    driver.get(url)
                    self.wait_for_challenge(driver, url)
                    body = self.fetch_in_page(driver, url)

                log.success(f"CSV descargado: {len(body) / 1024 / 1024:.2f} MB")
                return body
        except WebDriverException as e:
            raise CsvAcquisitionException(
                f"Browser error while downloading CSV: {type(e).__name__}: {e.msg or e}",
                url,
            ) from e

    async def download(self, url: str) -> bytes:
        """Descarga sin bloquear el event loop, con timeout global."""
        try:
            return await run_in_browser_thread(self.download_blocking, url, timeout=self.acquisition_timeout)
        except asyncio.TimeoutError as e:
            log.error(f"Descarga del CSV supero {self.acquisition_timeout}s, se abandona el thread del navegador")
            raise CsvAcquisitionException(
                f"CSV download timed out after {self.acquisition_timeout}s",
                url,
            ) from e
