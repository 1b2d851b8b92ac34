"""
Configuracion central del Sync Engine.
Gestiona variables de entorno y configuraciones globales.

Soporta configuracion dinamica para desarrollo (ENVIRONMENT=development)
y produccion (ENVIRONMENT=production):
- En desarrollo: SELENIUM_HEADLESS=false para ver el navegador resolviendo el challenge
- En produccion: SELENIUM_HEADLESS=true (headless)
- DATABASE_URL se puede especificar completa o por componentes
"""
from pydantic_settings import BaseSettings
from pydantic import Field, computed_field


class Settings(BaseSettings):
    """
    Clase de configuracion de la aplicacion.
    Lee variables de entorno y proporciona valores por defecto.
    """

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="MEC Sync Engine")
    APP_VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # Base de datos - Componentes separados (recomendado para flexibilidad)
    DATABASE_HOST: str = Field(default="localhost")
    DATABASE_PORT: int = Field(default=5432)
    DATABASE_USER: str = Field(default="mec_user")
    DATABASE_PASSWORD: str = Field(default="mec_pass")
    DATABASE_NAME: str = Field(default="mec_db")

    # Base de datos - URL completa (override de componentes si se proporciona)
    DATABASE_URL: str = Field(default="")
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=10)

    # Cache: "database" (compartido entre instancias) o "memory" (un solo proceso)
    CACHE_BACKEND: str = Field(default="database")

    # Selenium - Configurable para desarrollo (ver navegador) vs produccion (headless)
    SELENIUM_HEADLESS: bool = Field(default=True)
    MEC_BROWSER_USER_AGENT: str = Field(
        default=(
            "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        )
    )
    MEC_BROWSER_ACCEPT_LANGUAGE: str = Field(default="pt-BR,pt;q=0.9,en-US;q=0.8,en;q=0.7")
    MEC_BROWSER_WINDOW_SIZE: str = Field(default="1920,1080")

    # Origen del dataset de cursos de graduacion
    MEC_SITE_URL: str = Field(default="https://dadosabertos.mec.gov.br")
    MEC_CSV_URL: str = Field(
        default=(
            "https://dadosabertos.mec.gov.br/images/conteudo/Ind-ensino-superior/2022/"
            "/PDA_Dados_Cursos_Graduacao_Brasil.csv"
        )
    )
    MEC_CSV_DELIMITER: str = Field(default=",")

    # Timeouts del navegador (segundos)
    MEC_PAGE_LOAD_TIMEOUT: int = Field(default=60)
    MEC_CHALLENGE_TIMEOUT: int = Field(default=45)
    MEC_DOWNLOAD_TIMEOUT: int = Field(default=180)
    MEC_ACQUISITION_TIMEOUT: int = Field(default=420)

    # Cache local del CSV descargado
    MEC_CSV_CACHE_PATH: str = Field(default="data/mec-courses.csv")
    MEC_CSV_CACHE_DAYS: int = Field(default=6)

    # Sincronizacion
    MEC_SYNC_LOCK_TTL: int = Field(default=3600)
    MEC_SYNC_METADATA_TTL: int = Field(default=7 * 24 * 3600)
    MEC_BATCH_SIZE: int = Field(default=500)
    MEC_ERROR_WARN_EVERY: int = Field(default=1000)

    # TTLs de la capa de lectura (segundos)
    MEC_CACHE_TTL_INSTITUTIONS: int = Field(default=24 * 3600)
    MEC_CACHE_TTL_COURSES: int = Field(default=24 * 3600)
    MEC_CACHE_TTL_SEARCH: int = Field(default=3600)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/mec_sync.log")

    @computed_field
    @property
    def effective_database_url(self) -> str:
        """
        Retorna la URL de base de datos efectiva.
        Si DATABASE_URL esta definida, la usa directamente.
        Si no, construye la URL desde los componentes individuales.
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
        )

    class Config:
        """Configuracion de Pydantic."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra del .env


# Instancia global de configuracion
settings = Settings()
