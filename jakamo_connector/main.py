"""
Service entry point.

Loads and validates configuration, sets up logging and the folder set,
then runs the dispatch and reconciliation jobs until SIGINT/SIGTERM.
"""

import argparse
import signal
import threading

from pydantic import ValidationError

from jakamo_connector.config import Settings, load_settings, validate_settings
from jakamo_connector.core.exceptions import ConfigurationError
from jakamo_connector.core.folders import FolderSet
from jakamo_connector.core.logging import configure_logging, get_logger
from jakamo_connector.scheduler import run_now, start_scheduler, stop_scheduler
from jakamo_connector.services.jakamo import JakamoClient

log = get_logger(__name__)

EXIT_CONFIG_ERROR = 2


def build_client(config: Settings) -> JakamoClient:
    """Jakamo client built from explicit settings."""
    return JakamoClient(
        base_url=config.api_base_url,
        tenant_id=config.api_tenant_id,
        client_id=config.api_client_id,
        client_secret=config.api_client_secret,
        scope=config.api_scope,
        timeout=config.api_timeout_seconds,
    )


def wait_for_shutdown() -> None:
    """Block until SIGINT or SIGTERM arrives."""
    shutdown = threading.Event()

    def _handle(signum, frame):
        log.info("shutdown_requested", signal=signal.Signals(signum).name)
        shutdown.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)
    shutdown.wait()


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for the connector service."""
    parser = argparse.ArgumentParser(
        description="Exchange order documents between local folders and the Jakamo API"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Env file with JAKAMO_* settings (default: search the standard locations)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run one dispatch pass and one reconciliation pass, then exit",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override the configured logging level",
    )

    args = parser.parse_args(argv)

    configure_logging(log_level=args.log_level or "INFO")

    try:
        config = load_settings(args.config)
    except ValidationError as e:
        log.error(
            "configuration_invalid",
            errors=[f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()],
        )
        return EXIT_CONFIG_ERROR
    except ConfigurationError as e:
        log.error("configuration_invalid", errors=e.errors)
        return EXIT_CONFIG_ERROR

    configure_logging(
        log_level=args.log_level or config.logging_log_level,
        json_output=config.logging_json_output,
        log_file=config.log_file,
    )
    log.info("configuration_loaded", **config.summary())

    try:
        validate_settings(config)
    except ConfigurationError as e:
        log.error("configuration_invalid", errors=e.errors)
        return EXIT_CONFIG_ERROR

    folders = FolderSet.from_settings(config)
    folders.ensure()

    client = build_client(config)
    try:
        if args.once:
            stats = run_now(client, folders)
            log.info("single_run_complete", **stats)
            return 0

        log.info("connector_started", inbound=str(folders.inbound), responses=str(folders.responses))
        start_scheduler(
            client,
            folders,
            inbound_interval=config.polling_inbound_check_interval,
            response_interval=config.polling_response_check_interval,
        )
        try:
            wait_for_shutdown()
        finally:
            stop_scheduler(wait=True)
    finally:
        client.close()

    log.info("connector_stopped")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
