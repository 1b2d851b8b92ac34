"""
Orquestador del sync MEC.

Flujo de una corrida:
    lock -> run pending -> adquirir + decodificar + parsear -> reconciliar
    (instituciones, luego cursos) -> invalidar cache de lectura -> finalizar

Ante cualquier fallo la corrida queda en failed (mensaje + stack) y el error
se re-lanza al caller. El lock se libera siempre.
"""
import traceback
import uuid
from typing import Any, Callable, Dict, List, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.application.dto.mec_dto import SyncRunDTO, SyncStatusDTO
from app.application.services.encoding_normalizer import decode_csv_bytes
from app.application.services.mec_row_processor import process_csv_content
from app.application.use_cases.mec_reconciler import MecDataReconciler
from app.core.config import settings
from app.domain.entities.mec import ParseResult, SyncError, SyncMetadata, SyncResult
from app.infrastructure.cache.base import CacheService
from app.infrastructure.external.mec_dataset.csv_acquirer import AcquiredCsv, MecCsvAcquirer
from app.infrastructure.repositories.mec_course_repository import MecCourseRepository
from app.infrastructure.repositories.mec_institution_repository import MecInstitutionRepository
from app.infrastructure.repositories.mec_sync_log_repository import MecSyncLogRepository
from app.shared.constants.mec_constants import (
    MEC_READ_CACHE_KEYS,
    MEC_READ_CACHE_PATTERNS,
    MEC_SYNC_LOCK_KEY,
    MEC_SYNC_METADATA_KEY,
    SyncPhase,
    SyncStatus,
)
from app.shared.exceptions.base import AppException
from app.shared.exceptions.sync import SyncInProgressException
from app.shared.utils.datetime_utils import DateTimeUtils


log = logger.bind(context="MecSync")

# Errores de parseo que se guardan en error_details de la corrida
MAX_PERSISTED_PARSE_ERRORS = 100
MAX_ERROR_MESSAGE_LENGTH = 2000

ReconcilerFactory = Callable[[AsyncSession], MecDataReconciler]


class MecSyncUseCases:
    """
    Unico escritor de mec_sync_logs y de la metadata del sync.

    Una corrida por vez en todo el sistema: el lock vive en el cache compartido.
    Una segunda llamada mientras hay otra en curso falla de inmediato con
    SyncInProgressException (sin cola, sin reintento, sin crear corrida).
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache: CacheService,
        acquirer: MecCsvAcquirer,
        reconciler_factory: Optional[ReconcilerFactory] = None,
        batch_size: Optional[int] = None,
        lock_ttl: Optional[int] = None,
        metadata_ttl: Optional[int] = None,
        csv_delimiter: Optional[str] = None,
        warn_every: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.cache = cache
        self.acquirer = acquirer
        self.batch_size = batch_size or settings.MEC_BATCH_SIZE
        self.lock_ttl = lock_ttl or settings.MEC_SYNC_LOCK_TTL
        self.metadata_ttl = metadata_ttl or settings.MEC_SYNC_METADATA_TTL
        self.csv_delimiter = csv_delimiter or settings.MEC_CSV_DELIMITER
        self.warn_every = settings.MEC_ERROR_WARN_EVERY if warn_every is None else warn_every
        self.reconciler_factory = reconciler_factory or self._default_reconciler
        self.current_phase = SyncPhase.IDLE

    def _default_reconciler(self, session: AsyncSession) -> MecDataReconciler:
        return MecDataReconciler(
            MecInstitutionRepository(session),
            MecCourseRepository(session),
            batch_size=self.batch_size,
        )

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    async def sync(self, triggered_by: str = "manual") -> SyncResult:
        """
        Ejecuta una corrida completa.

        Raises:
            SyncInProgressException: otra corrida tiene el lock
            Exception: cualquier fallo fatal (la corrida queda en failed)
        """
        lock_token = uuid.uuid4().hex
        if not await self.cache.acquire_lock(MEC_SYNC_LOCK_KEY, self.lock_ttl, token=lock_token):
            log.warning(f"Sync rechazado ({triggered_by}): ya hay una corrida en progreso")
            raise SyncInProgressException(MEC_SYNC_LOCK_KEY)

        self.current_phase = SyncPhase.LOCKED
        started_at = DateTimeUtils.now_utc()
        run_id: Optional[int] = None
        log.info(f"Iniciando sync MEC (triggered_by={triggered_by})")

        try:
            run_id = await self._create_run(triggered_by)
            return await self._execute(run_id, triggered_by, started_at)
        except Exception as e:
            failed_phase = self.current_phase
            self.current_phase = SyncPhase.FINALIZING
            await self._finalize_failure(run_id, triggered_by, started_at, e, failed_phase)
            raise
        finally:
            try:
                await self.cache.release_lock(MEC_SYNC_LOCK_KEY, token=lock_token)
            except Exception as release_error:
                log.error(f"No se pudo liberar el lock '{MEC_SYNC_LOCK_KEY}' (expira por TTL): {release_error}")
            self.current_phase = SyncPhase.IDLE

    async def _create_run(self, triggered_by: str) -> int:
        async with self.session_factory() as session:
            run = await MecSyncLogRepository(session).create_run(
                triggered_by=triggered_by,
                source_url=self.acquirer.csv_url,
            )
            await session.commit()
            return run.id

    async def _execute(self, run_id: int, triggered_by: str, started_at) -> SyncResult:
        self.current_phase = SyncPhase.PARSING
        acquired = await self.acquirer.acquire()
        content, encoding = decode_csv_bytes(acquired.content)
        parsed = process_csv_content(
            content,
            file_size=acquired.size,
            delimiter=self.csv_delimiter,
            warn_every=self.warn_every,
        )

        self.current_phase = SyncPhase.RECONCILING
        # Un commit por tipo de entidad: si fallan los cursos, las
        # instituciones de esta corrida quedan persistidas.
        async with self.session_factory() as session:
            try:
                reconciler = self.reconciler_factory(session)
                institutions = await reconciler.sync_institutions(parsed.institutions.values())
                await session.commit()
                courses = await reconciler.sync_courses(parsed.courses)
                await session.commit()
            except Exception:
                await session.rollback()
                raise

        await self.invalidate_read_caches()

        self.current_phase = SyncPhase.FINALIZING
        duration_ms = DateTimeUtils.elapsed_ms(started_at)

        async with self.session_factory() as session:
            await MecSyncLogRepository(session).update_run(
                run_id,
                status=SyncStatus.SUCCESS,
                completed_at=DateTimeUtils.now_utc(),
                institutions_inserted=institutions.inserted,
                institutions_updated=institutions.updated,
                courses_inserted=courses.inserted,
                courses_updated=courses.updated,
                total_rows_processed=parsed.total_rows,
                parse_errors_count=len(parsed.errors),
                source_file_size=parsed.file_size,
                source_url=acquired.source_url,
                error_details=self._success_details(parsed, acquired, encoding),
            )
            await session.commit()

        # La corrida ya quedo en success: desde aca nada puede marcarla failed
        try:
            await self._store_metadata(SyncStatus.SUCCESS, duration_ms, triggered_by)
        except Exception:
            log.exception(f"Corrida {run_id} exitosa pero no se pudo guardar la metadata del sync")

        log.success(
            f"Sync MEC completado en {duration_ms} ms: "
            f"{institutions.inserted} instituciones y {courses.inserted} cursos nuevos, "
            f"{len(parsed.errors)} errores de parseo"
        )
        return SyncResult(
            run_id=run_id,
            institutions_inserted=institutions.inserted,
            institutions_updated=institutions.updated,
            courses_inserted=courses.inserted,
            courses_updated=courses.updated,
            total_rows_processed=parsed.total_rows,
            duration_ms=duration_ms,
            errors=parsed.errors,
        )

    @staticmethod
    def _success_details(parsed: ParseResult, acquired: AcquiredCsv, encoding: str) -> Dict[str, Any]:
        return {
            "encoding": encoding,
            "from_cache": acquired.from_cache,
            "parse_errors": [
                {"row": error.row, "message": error.message}
                for error in parsed.errors[:MAX_PERSISTED_PARSE_ERRORS]
            ],
        }

    async def _finalize_failure(
        self,
        run_id: Optional[int],
        triggered_by: str,
        started_at,
        error: Exception,
        failed_phase: SyncPhase,
    ) -> None:
        """
        Marca la corrida como failed y reconstruye la metadata.
        Un fallo aqui se registra pero nunca oculta el error original.
        """
        duration_ms = DateTimeUtils.elapsed_ms(started_at)
        log.error(f"Sync MEC fallo tras {duration_ms} ms: {type(error).__name__}: {error}")

        try:
            if run_id is not None:
                async with self.session_factory() as session:
                    await MecSyncLogRepository(session).update_run(
                        run_id,
                        status=SyncStatus.FAILED,
                        completed_at=DateTimeUtils.now_utc(),
                        error_message=str(error)[:MAX_ERROR_MESSAGE_LENGTH] or type(error).__name__,
                        error_details={
                            "type": type(error).__name__,
                            "error_code": getattr(error, "error_code", None),
                            "details": error.details if isinstance(error, AppException) else None,
                            "phase": failed_phase.value,
                            "stack": "".join(
                                traceback.format_exception(type(error), error, error.__traceback__)
                            ),
                        },
                    )
                    await session.commit()
            await self._store_metadata(SyncStatus.FAILED, duration_ms, triggered_by)
        except Exception:
            log.exception("No se pudo registrar la corrida fallida")

    async def _store_metadata(self, status: SyncStatus, duration_ms: int, triggered_by: str) -> None:
        async with self.session_factory() as session:
            total_institutions = await MecInstitutionRepository(session).count_active()
            total_courses = await MecCourseRepository(session).count_active()

        metadata = SyncMetadata(
            last_sync_at=DateTimeUtils.now_utc(),
            last_sync_status=status.value,
            last_sync_duration=duration_ms,
            total_institutions=total_institutions,
            total_courses=total_courses,
            triggered_by=triggered_by,
        )
        await self.cache.set(MEC_SYNC_METADATA_KEY, metadata.to_dict(), ttl=self.metadata_ttl)

    async def invalidate_read_caches(self) -> int:
        """Elimina las claves de la capa de lectura. Retorna cuantas se borraron."""
        removed = 0
        for pattern in MEC_READ_CACHE_PATTERNS:
            removed += await self.cache.delete_pattern(pattern)
        for key in MEC_READ_CACHE_KEYS:
            await self.cache.delete(key)
        log.info(f"Cache de lectura invalidada ({removed} claves por patron)")
        return removed

    # ------------------------------------------------------------------
    # Estado
    # ------------------------------------------------------------------

    async def is_sync_running(self) -> bool:
        return await self.cache.is_locked(MEC_SYNC_LOCK_KEY)

    async def get_sync_metadata(self) -> Optional[SyncMetadata]:
        data = await self.cache.get(MEC_SYNC_METADATA_KEY)
        if not data:
            return None
        return SyncMetadata.from_dict(data)

    async def get_sync_history(self, limit: int = 10) -> List[SyncRunDTO]:
        async with self.session_factory() as session:
            runs = await MecSyncLogRepository(session).find_history(limit)
            return [SyncRunDTO.model_validate(run) for run in runs]

    async def get_last_sync_run(self) -> Optional[SyncRunDTO]:
        async with self.session_factory() as session:
            run = await MecSyncLogRepository(session).find_last_run()
            return SyncRunDTO.model_validate(run) if run else None

    async def get_sync_status(self) -> Dict[str, Any]:
        """Lock, snapshot de metadata, ultima corrida y frescura del CSV local."""
        metadata = await self.get_sync_metadata()
        status = SyncStatusDTO(
            is_running=await self.is_sync_running(),
            metadata=metadata.to_dict() if metadata else None,
            last_run=await self.get_last_sync_run(),
            csv_cache_fresh=self.acquirer.is_cache_fresh(),
            csv_cache_path=str(self.acquirer.cache_path),
        )
        return status.model_dump(mode="json")


def errors_summary(errors: List[SyncError], limit: int = 10) -> List[str]:
    """Primeros errores de parseo en formato legible ("linea N: mensaje")."""
    return [f"linea {error.row}: {error.message}" for error in errors[:limit]]


def build_mec_sync_use_cases(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    cache: Optional[CacheService] = None,
) -> MecSyncUseCases:
    """Arma el orquestador con los colaboradores de produccion (settings)."""
    from app.infrastructure.cache import build_cache_service
    from app.infrastructure.external.mec_dataset.browser_downloader import BrowserCsvDownloader

    if session_factory is None:
        from app.infrastructure.database.session import AsyncSessionLocal
        session_factory = AsyncSessionLocal

    return MecSyncUseCases(
        session_factory=session_factory,
        cache=cache or build_cache_service(session_factory),
        acquirer=MecCsvAcquirer(BrowserCsvDownloader()),
    )
