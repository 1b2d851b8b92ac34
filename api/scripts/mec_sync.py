"""
CLI: sincronizacion del catalogo MEC (instituciones y cursos de graduacion).

Uso recomendado:
  - Ejecutar como job (cron/systemd timer) con --triggered-by cron.
  - Solo una corrida a la vez en todo el sistema (lock compartido).

Ejecucion:
  python scripts/mec_sync.py sync --triggered-by manual
  python scripts/mec_sync.py status
  python scripts/mec_sync.py history --limit 20
  python scripts/mec_sync.py init-db

Codigos de salida:
  0  corrida exitosa / consulta OK
  1  corrida fallida (queda registrada en el historial)
  2  ya hay una corrida en progreso
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from loguru import logger
from dotenv import load_dotenv

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
# La carpeta "api" contiene el paquete raiz `app/`.
_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

# Cargar variables desde .env si existe (api/.env o raiz del repo).
_REPO_ROOT = _API_ROOT.parent
load_dotenv(_API_ROOT / ".env", override=False)
load_dotenv(_REPO_ROOT / ".env", override=False)

from app.application.use_cases.mec_sync_use_cases import build_mec_sync_use_cases, errors_summary
from app.core.logging import setup_logging
from app.infrastructure.database.session import close_db, init_db
from app.shared.exceptions.base import AppException
from app.shared.exceptions.sync import SyncInProgressException


EXIT_OK = 0
EXIT_FAILED = 1
EXIT_IN_PROGRESS = 2


def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


async def _run_sync(triggered_by: str) -> int:
    use_cases = build_mec_sync_use_cases()
    try:
        result = await use_cases.sync(triggered_by=triggered_by)
    except SyncInProgressException as e:
        logger.warning(e.message)
        return EXIT_IN_PROGRESS
    except AppException as e:
        logger.error(f"Sync fallido: {e.error_code}: {e.message}")
        _print_json(e.to_dict())
        return EXIT_FAILED
    except Exception as e:
        logger.error(f"Sync fallido: {type(e).__name__}: {e}")
        return EXIT_FAILED
    finally:
        await close_db()

    _print_json({
        "run_id": result.run_id,
        "institutions_inserted": result.institutions_inserted,
        "courses_inserted": result.courses_inserted,
        "total_rows_processed": result.total_rows_processed,
        "duration_ms": result.duration_ms,
        "parse_errors": len(result.errors),
        "first_errors": errors_summary(result.errors),
    })
    return EXIT_OK


async def _show_status() -> int:
    use_cases = build_mec_sync_use_cases()
    try:
        _print_json(await use_cases.get_sync_status())
    finally:
        await close_db()
    return EXIT_OK


async def _init_db() -> int:
    try:
        await init_db()
        logger.success("Tablas del catalogo MEC creadas (las existentes no se modifican)")
    finally:
        await close_db()
    return EXIT_OK


async def _show_history(limit: int) -> int:
    use_cases = build_mec_sync_use_cases()
    try:
        runs = await use_cases.get_sync_history(limit=limit)
        _print_json([run.model_dump(mode="json", exclude={"error_details"}) for run in runs])
    finally:
        await close_db()
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sincronizacion del dataset de cursos del MEC")
    parser.add_argument("--log-level", default=None, help="Override de LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser("sync", help="Ejecuta una corrida completa")
    sync_parser.add_argument(
        "--triggered-by",
        default="manual",
        help="Origen de la corrida (cron, manual, admin:<id>, ...).",
    )

    subparsers.add_parser("status", help="Estado actual (lock, metadata, ultima corrida)")

    subparsers.add_parser("init-db", help="Crea las tablas faltantes (desarrollo; en produccion usar alembic)")

    history_parser = subparsers.add_parser("history", help="Ultimas corridas")
    history_parser.add_argument("--limit", type=int, default=10)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(log_level=args.log_level)

    if args.command == "sync":
        return asyncio.run(_run_sync(args.triggered_by))
    if args.command == "status":
        return asyncio.run(_show_status())
    if args.command == "init-db":
        return asyncio.run(_init_db())
    return asyncio.run(_show_history(args.limit))


if __name__ == "__main__":
    raise SystemExit(main())
