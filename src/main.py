"""Main entry point module.

Handles CLI arguments, thread lifecycle, signal handling, and clean shutdown.
"""

import argparse
import logging
import os
import signal
import sys
import threading
from typing import Any

import config as config_module
import database
import recorder
import reporter
import store


logger = logging.getLogger(__name__)


def setup_logging(level: int = logging.INFO) -> None:
    """Configure logging for the application.

    Args:
        level: Logging level (default: INFO)
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def run_with_restart(
    target_func: Any, shutdown_event: threading.Event, thread_name: str, *args: Any
) -> None:
    """Run a function with automatic restart on exception.

    Catches any unhandled exception, logs it, waits 30 seconds (checking
    shutdown_event during wait), then restarts the function.

    Args:
        target_func: The function to run
        shutdown_event: Event to signal shutdown
        thread_name: Name of the thread for logging
        *args: Arguments to pass to the function
    """
    while not shutdown_event.is_set():
        try:
            target_func(*args)
        except Exception:
            logger.exception(
                f"Unhandled exception in {thread_name}, waiting to restart..."
            )

            # Wait 30 seconds before restart, checking shutdown_event
            if shutdown_event.wait(timeout=30):
                break

            logger.info(f"Restarting {thread_name}...")


def main() -> int:
    """Main entry point.

    Returns:
        Exit code (0 for clean shutdown)
    """
    # Parse CLI arguments
    parser = argparse.ArgumentParser(description="Resilient Time Recorder")
    parser.add_argument(
        "--config", required=True, help="Path to configuration YAML file"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    # Setup logging
    log_level = logging.DEBUG if args.debug else logging.INFO
    setup_logging(log_level)

    # Load configuration
    try:
        cfg = config_module.load_config(args.config)
        logger.info(f"Configuration loaded from {args.config}")
    except config_module.ConfigError as e:
        print(f"ERROR: Invalid configuration: {e}", file=sys.stderr)
        return 1

    # Validate output directory exists
    output_dir = os.path.dirname(os.path.abspath(cfg.output.json_path)) or "."
    if not os.path.isdir(output_dir):
        logger.error(
            f"Output directory does not exist: {output_dir!r} "
            f"(from output.json_path: {cfg.output.json_path!r})"
        )
        return 1

    # Initialize database (creates tables, then we close this connection)
    try:
        init_conn = database.init_db(cfg.database.path)
        init_conn.close()
        logger.info(f"Database initialized at {cfg.database.path}")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        return 1

    # Create recorder components
    store_client = store.SqliteStore(cfg.database.path)
    recorder_instance = recorder.Recorder(store_client)
    reporter_instance = reporter.Reporter(cfg, recorder_instance)

    # Create shutdown event
    shutdown_event = threading.Event()

    def handle_signal(signum: int, frame: Any) -> None:
        logger.info(f"Received signal {signum}, initiating shutdown...")
        shutdown_event.set()

    # Setup signal handlers
    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)

    # Start recorder workers
    recorder_instance.start(cfg.recording)

    # Start reporter thread
    reporter_thread = threading.Thread(
        target=run_with_restart,
        args=(reporter_instance.run, shutdown_event, "reporter", shutdown_event),
        name="reporter",
        daemon=True,
    )
    reporter_thread.start()
    logger.info(f"Started {reporter_thread.name} thread")

    # Main thread heartbeat
    try:
        while not shutdown_event.wait(timeout=30):
            state = recorder_instance.state
            logger.debug(
                f"Heartbeat: connectivity={state.get_connectivity()}, "
                f"persisted={recorder_instance.total_persisted()}, "
                f"pending={recorder_instance.pending_count()}, "
                f"sample={state.get_thread_last_run('sample')}, "
                f"recovery={state.get_thread_last_run('recovery')}, "
                f"reporter={state.get_thread_last_run('reporter')}"
            )
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        shutdown_event.set()

    # Shutdown
    logger.info("Shutting down threads...")

    report = recorder_instance.shutdown(cfg.recording.shutdown_timeout_seconds)
    if not report.completed:
        logger.warning("Recorder shutdown did not complete within its grace period")

    # Wait for reporter thread to finish
    reporter_thread.join(timeout=5)
    if reporter_thread.is_alive():
        logger.warning(f"Thread {reporter_thread.name} did not stop within timeout")

    logger.info(
        f"Shutdown complete: persisted={report.total_persisted}, "
        f"pending={report.pending_count}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
