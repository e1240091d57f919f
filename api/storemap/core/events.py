"""
Manejadores de eventos de inicio y cierre de la aplicacion.
"""
from typing import Callable

from fastapi import FastAPI
from loguru import logger

from storemap.application.use_cases.sync_use_cases import build_sync_runner
from storemap.core.config import Settings, settings
from storemap.core.scheduler import build_scheduler, log_last_success
from storemap.infrastructure.database.session import AsyncSessionLocal, close_db, init_db
from storemap.shared.exceptions.sync import ConfigurationError


def startup_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de inicio de la aplicacion.

    Args:
        app: Instancia de FastAPI

    Returns:
        Callable: Funcion asincrona de inicio
    """
    async def startup() -> None:
        """Inicializa recursos al inicio de la aplicacion."""
        try:
            logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
            logger.info(f"Entorno: {settings.ENVIRONMENT}")

            logger.add(
                settings.LOG_FILE,
                rotation="500 MB",
                retention="10 days",
                level=settings.LOG_LEVEL
            )

            _validate_config()

            # Crea tablas si no existen (en produccion el esquema lo maneja alembic)
            await init_db()
            logger.info("Base de datos inicializada")

            app.state.scheduler = None
            if settings.ENABLE_SCHEDULER:
                runner = build_sync_runner(settings, AsyncSessionLocal)
                scheduler = build_scheduler(settings, runner.run)
                scheduler.start()
                app.state.scheduler = scheduler
                await log_last_success(AsyncSessionLocal)
                logger.info("Scheduler de sync iniciado")

            logger.success("Aplicacion iniciada correctamente")
            _print_available_urls()

        except Exception as e:
            logger.exception(f"Error durante startup: {e}")
            raise

    return startup


def _validate_config(app_settings: Settings = settings) -> None:
    """
    Valida la configuracion al arrancar.

    Raises:
        ConfigurationError: ENABLE_SYNC_API activo sin SYNC_SECRET.
    """
    if app_settings.ENABLE_SYNC_API and not app_settings.SYNC_SECRET:
        raise ConfigurationError(
            "ENABLE_SYNC_API activo sin SYNC_SECRET", field="SYNC_SECRET"
        )

    warnings = []
    if not app_settings.GOOGLE_SHEET_ID:
        warnings.append("GOOGLE_SHEET_ID no configurada - el sync fallara")
    if not app_settings.GOOGLE_PLACES_API_KEY:
        warnings.append("GOOGLE_PLACES_API_KEY no configurada - el sync fallara")

    for warning in warnings:
        logger.warning(f"CONFIG: {warning}")


def _print_available_urls() -> None:
    """Imprime las URLs disponibles de la aplicacion."""
    access_host = "localhost" if settings.HOST == "0.0.0.0" else settings.HOST
    base_url = f"http://{access_host}:{settings.PORT}"

    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")
    logger.opt(colors=True).info("<bold><green>URLS DISPONIBLES:</green></bold>")
    logger.opt(colors=True).info(f"<cyan>  Swagger UI:  {base_url}/docs</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Mapa:        {base_url}/api/v1/stores/map</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Sync status: {base_url}/api/v1/sync/status</cyan>")
    if settings.ENABLE_SYNC_API:
        logger.opt(colors=True).info(f"<cyan>  Sync manual: POST {base_url}/api/v1/sync/trigger</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Health:      {base_url}/health</cyan>")
    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")


def shutdown_handler(app: FastAPI) -> Callable:
    """
    Manejador de eventos de cierre de la aplicacion.

    Args:
        app: Instancia de FastAPI

    Returns:
        Callable: Funcion asincrona de cierre
    """
    async def shutdown() -> None:
        """Libera recursos al cerrar la aplicacion."""
        logger.info("Cerrando aplicacion...")

        scheduler = getattr(app.state, "scheduler", None)
        if scheduler is not None:
            scheduler.shutdown(wait=False)
            logger.info("Scheduler detenido")

        await close_db()
        logger.info("Conexiones de base de datos cerradas")

        logger.success("Aplicacion cerrada correctamente")

    return shutdown
