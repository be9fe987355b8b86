"""
CLI Markdown Server.

    python -m mdserver serve        HTTP сервер (uvicorn)
    python -m mdserver sync         один цикл синхронизации, код выхода 0/1
    python -m mdserver watch        синхронизация по таймеру без HTTP
"""
import argparse
import json
import signal
import sys
import time

from mdserver.logging_config import get_logger, setup_logging
from mdserver.settings import settings as default_settings

logger = get_logger("mdserver.cli")

# Флаг для graceful shutdown
shutdown_requested = False


def signal_handler(signum, frame):
    """Обработчик сигналов для graceful shutdown"""
    global shutdown_requested
    logger.info(f"Received signal {signum}, initiating graceful shutdown...")
    shutdown_requested = True


def _settings_from_args(args):
    overrides = {}
    if getattr(args, "dir", None):
        overrides["SYNC_DIR"] = args.dir
    if getattr(args, "host", None):
        overrides["HOST"] = args.host
    if getattr(args, "port", None):
        overrides["PORT"] = args.port
    return default_settings.model_copy(update=overrides) if overrides else default_settings


def cmd_serve(args) -> int:
    import uvicorn

    from mdserver.main import create_app

    settings = _settings_from_args(args)
    uvicorn.run(create_app(settings), host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
    return 0


def cmd_sync(args) -> int:
    from mdserver.main import build_components

    components = build_components(_settings_from_args(args))
    result = components.scheduler.run_cycle()
    print(json.dumps(result.as_dict(), ensure_ascii=False, indent=2))
    return 0 if result.success else 1


def cmd_watch(args) -> int:
    """Главный цикл синхронизации без HTTP"""
    from mdserver.main import build_components

    global shutdown_requested

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    settings = _settings_from_args(args)

    logger.info("=" * 60)
    logger.info("Markdown Sync Starting")
    logger.info("=" * 60)
    logger.info(f"Sync dir: {settings.SYNC_DIR}")
    logger.info(f"Scan interval: {settings.SCAN_INTERVAL_SECONDS}s")
    logger.info(f"Allowed extensions: {settings.allowed_extensions}")
    logger.info(f"Failed entry policy: {settings.FAILED_ENTRY_POLICY}")
    logger.info("=" * 60)

    try:
        components = build_components(settings)
    except Exception as e:
        logger.error(f"❌ Failed to initialize sync: {e}")
        return 1

    scheduler = components.scheduler
    while not shutdown_requested:
        scheduler.run_cycle()

        if not shutdown_requested:
            logger.debug(f"💤 Sleeping for {settings.SCAN_INTERVAL_SECONDS}s...")
            time.sleep(settings.SCAN_INTERVAL_SECONDS)

    logger.info("=" * 60)
    logger.info("Markdown Sync Stopped")
    logger.info("=" * 60)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mdserver", description="Markdown Server")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Запустить HTTP сервер")
    serve.add_argument("--host", help="Адрес (по умолчанию HOST)")
    serve.add_argument("--port", type=int, help="Порт (по умолчанию PORT)")
    serve.add_argument("--dir", help="Папка с markdown (по умолчанию SYNC_DIR)")
    serve.set_defaults(func=cmd_serve)

    sync = subparsers.add_parser("sync", help="Один цикл синхронизации")
    sync.add_argument("--dir", help="Папка с markdown (по умолчанию SYNC_DIR)")
    sync.set_defaults(func=cmd_sync)

    watch = subparsers.add_parser("watch", help="Синхронизация по таймеру")
    watch.add_argument("--dir", help="Папка с markdown (по умолчанию SYNC_DIR)")
    watch.set_defaults(func=cmd_watch)

    return parser


def main(argv=None) -> int:
    setup_logging()
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
