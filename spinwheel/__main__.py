"""CLI entry point for spinwheel."""
import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from .config import ConfigError, ExitCode
from .main import SpinWheelApp

CONFIG_CANDIDATES = ("./config.yaml", "./cfg.yaml")


def setup_logging(level: str = "INFO", log_file: str | None = None, silent: bool = False) -> None:
    handlers: list[logging.Handler] = []
    if not silent:
        handlers.append(logging.StreamHandler())

    log_file_error = None
    if log_file:
        log_dir = Path(log_file).parent
        if log_dir.is_dir():
            handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
        else:
            log_file_error = f"The requested logfile path {log_dir} does not exist"

    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%b %d %H:%M:%S",
        handlers=handlers,
    )
    logging.getLogger("discord.http").setLevel(logging.WARNING)

    if log_file_error:
        logging.getLogger("spinwheel").warning(log_file_error)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Spin The Wheel — prize wheel and Big Red Button bot")
    parser.add_argument("-c", "--config", type=str, help="Path to the YAML config file")
    parser.add_argument("-d", "--debug", action="store_true", help="Turns debug level logging on")
    parser.add_argument("--log-level", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("-s", "--silent", action="store_true", help="Turns console logging off")
    parser.add_argument("-f", "--log-file", type=str, help="Also log to this file (can be used with -s)")
    parser.add_argument("--validate-config", action="store_true", help="Validate config and exit without starting")
    return parser.parse_args(argv)


def resolve_config_path(explicit: str | None) -> str | None:
    if explicit:
        return explicit
    for candidate in CONFIG_CANDIDATES:
        if Path(candidate).exists():
            return candidate
    return None


async def main_async(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging("DEBUG" if args.debug else args.log_level, args.log_file, args.silent)
    logger = logging.getLogger("spinwheel")

    config_path = resolve_config_path(args.config)
    if not config_path:
        logger.error("No config file found. Use --config or place config.yaml in CWD.")
        return ExitCode.CONFIG_FILE_NOT_FOUND

    if args.validate_config:
        from .config import load_config

        try:
            load_config(config_path)
        except ConfigError as e:
            logger.error("Config validation failed: %s", e)
            return e.exit_code
        logger.info("Config is valid.")
        return 0

    app = SpinWheelApp(config_path)

    # Signal handling (Unix only; Windows uses KeyboardInterrupt)
    loop = asyncio.get_running_loop()
    if sys.platform != "win32":
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, lambda: asyncio.ensure_future(app.stop()))

    try:
        await app.start()
    except ConfigError as e:
        logger.error("%s. Exiting!", e)
        return e.exit_code
    except KeyboardInterrupt:
        pass
    finally:
        await app.stop()
    return 0


def main() -> None:
    """Sync entry point for pyproject.toml [project.scripts]."""
    sys.exit(int(asyncio.run(main_async())))


if __name__ == "__main__":
    main()
