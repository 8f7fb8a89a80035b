"""
GRACEFULSHUTDOWN - Example Runner

Waits for SIGINT/SIGTERM or, when a lifecycle hook is configured, for an
autoscaler termination notice, then runs a demo cleanup callback.

Usage:
    gracefulshutdown-example [config.yaml]
"""

import logging
import sys
import time

from gracefulshutdown.config.settings import LifecycleHookConfig
from gracefulshutdown.core.shutdown import GracefulShutdown
from gracefulshutdown.managers.lifecycle_hook import LifecycleHookManager
from gracefulshutdown.managers.posix_signal import PosixSignalManager

logger = logging.getLogger("gracefulshutdown")


def cleanup(manager_name: str) -> None:
    logger.info(f"Cleanup started (requested by {manager_name})")
    time.sleep(1.0)
    logger.info("Cleanup finished")


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config_file = sys.argv[1] if len(sys.argv) > 1 else None
    config = LifecycleHookConfig.load(config_file)

    gs = GracefulShutdown(ping_interval=config.ping_interval or 60.0)
    gs.add_shutdown_manager(PosixSignalManager())

    if config.lifecycle_hook_name:
        gs.add_shutdown_manager(LifecycleHookManager(config))

    gs.set_error_handler(lambda error: print(f"❌ Shutdown error: {error}", file=sys.stderr))
    gs.add_shutdown_callback(cleanup)

    try:
        gs.start()
    except Exception as e:
        logger.error(f"Start failed: {e}")
        return 1

    logger.info("Running; send SIGTERM or a termination notice to shut down")
    while not gs.wait(timeout=1.0):
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
