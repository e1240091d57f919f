"""
CLI de operacion: Google Sheets -> geocoding -> Postgres.

Subcomandos:
  sync [--full]        Ejecuta una sincronizacion ahora (incremental por defecto)
  serve                Levanta la API HTTP (uvicorn)
  schedule             Solo scheduler (sync diario, completo el FULL_SYNC_DAY)
  serve-schedule       API HTTP + scheduler en el mismo proceso
  init-db              Crea las tablas si no existen
  history [--limit N]  Muestra las ultimas corridas registradas

Ejecucion:
  python scripts/manage.py sync
  python scripts/manage.py sync --full
  python scripts/manage.py history --limit 5
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
# La carpeta "api" contiene el paquete raiz `storemap/` y `main.py`.
_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

# Settings se instancia al importar: el .env debe cargarse antes
_REPO_ROOT = _API_ROOT.parent
load_dotenv(_API_ROOT / ".env", override=False)
load_dotenv(_REPO_ROOT / ".env", override=False)

from storemap.application.use_cases.sync_use_cases import build_sync_runner
from storemap.core.config import settings
from storemap.core.scheduler import build_scheduler, log_last_success
from storemap.domain.entities.store import SyncMode
from storemap.infrastructure.database.session import AsyncSessionLocal, close_db, init_db
from storemap.infrastructure.repositories.sync_run_repository import SyncRunRepository


def _configure_logging() -> None:
    logger.remove()
    logger.add(sys.stderr, level=settings.LOG_LEVEL)


async def _sync(mode: SyncMode) -> int:
    try:
        await init_db()
        runner = build_sync_runner(settings, AsyncSessionLocal)
        result = await runner.run(mode)
    except Exception as e:
        logger.error(f"Sync abortado: {e}")
        return 1
    finally:
        await close_db()

    logger.info(
        f"Resultado: {result.stores_read} tiendas leidas, {result.stores_saved} guardadas, "
        f"{result.shipments_saved} despachos, {result.shipments_skipped} fechas invalidas"
    )
    return 0


async def _schedule_forever() -> int:
    await init_db()
    runner = build_sync_runner(settings, AsyncSessionLocal)
    scheduler = build_scheduler(settings, runner.run)
    scheduler.start()
    await log_last_success(AsyncSessionLocal)
    logger.info("Scheduler en ejecucion (Ctrl+C para salir)")
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown(wait=False)
        await close_db()
    return 0


async def _init_db() -> int:
    logger.info("Inicializando base de datos...")
    try:
        await init_db()
        logger.success("Base de datos inicializada correctamente")
    finally:
        await close_db()
    return 0


async def _history(limit: int) -> int:
    try:
        async with AsyncSessionLocal() as session:
            runs = await SyncRunRepository(session).get_history(limit)
    finally:
        await close_db()

    if not runs:
        print("Sin corridas registradas")
        return 0

    for run in runs:
        ended = f"{run.end_time:%Y-%m-%d %H:%M:%S}" if run.end_time else "-"
        print(
            f"#{run.id:<5} {run.start_time:%Y-%m-%d %H:%M:%S}  {ended:<19}  "
            f"{run.status:<8} {run.mode:<11} {run.message or ''}"
        )
    return 0


def _serve(with_scheduler: bool) -> int:
    import uvicorn

    if with_scheduler:
        # main:app se importa en este mismo proceso y lee este objeto settings
        settings.ENABLE_SCHEDULER = True

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        app_dir=str(_API_ROOT),
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="manage.py",
        description="Sincronizacion de tiendas y despachos (Google Sheets -> Postgres)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sync = sub.add_parser("sync", help="Ejecuta una sincronizacion ahora")
    sync.add_argument(
        "--full",
        action="store_true",
        help="Vuelve a buscar la ubicacion de todas las tiendas (ignora las ya guardadas).",
    )

    sub.add_parser("serve", help="Levanta la API HTTP")
    sub.add_parser("schedule", help="Ejecuta solo el scheduler")
    sub.add_parser("serve-schedule", help="API HTTP + scheduler")
    sub.add_parser("init-db", help="Crea las tablas si no existen")

    history = sub.add_parser("history", help="Muestra las ultimas corridas")
    history.add_argument("--limit", type=int, default=10, help="Cantidad de corridas (default: 10)")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging()

    if args.command == "sync":
        mode = SyncMode.FULL if args.full else SyncMode.INCREMENTAL
        return asyncio.run(_sync(mode))
    if args.command == "serve":
        return _serve(with_scheduler=False)
    if args.command == "serve-schedule":
        return _serve(with_scheduler=True)
    if args.command == "schedule":
        try:
            return asyncio.run(_schedule_forever())
        except KeyboardInterrupt:
            logger.info("Scheduler detenido")
            return 0
    if args.command == "init-db":
        return asyncio.run(_init_db())
    if args.command == "history":
        if args.limit < 1:
            raise SystemExit("--limit debe ser >= 1")
        return asyncio.run(_history(args.limit))
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
