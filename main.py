# HeartPing - Runner
# Monitors one target from config/config.yaml until interrupted

"""
HeartPing Runner

Loads configuration, starts a HeartbeatManager against the configured
target and logs every beat, failure and timeout. Stops on SIGINT/SIGTERM
and prints final statistics.

Usage:
    HEARTPING_TARGET=https://example.com python main.py
"""

import asyncio
import signal

from heartping.connection.heartbeat_manager import HeartbeatManager
from heartping.connection.prober import Prober
from heartping.utils.config import load_config, validate_config
from heartping.utils.logger import configure, setup_logger


def build_manager(config: dict) -> HeartbeatManager:
    """Create a HeartbeatManager configured from the heartbeat/probe sections"""
    heartbeat = config['heartbeat']
    prober = Prober(request_timeout=config['probe']['request_timeout'])

    manager = HeartbeatManager(prober=prober)
    manager.set_beat_interval(heartbeat['interval_ms'])
    manager.set_beat_timeout(heartbeat['timeout_ms'])
    return manager


async def run(config: dict, shutdown_event: asyncio.Event) -> dict:
    """
    Beat against the configured target until shutdown_event is set

    Returns:
        Final heartbeat statistics
    """
    logger = setup_logger("Main", "INFO")
    heartbeat = config['heartbeat']
    target = heartbeat['target']

    manager = build_manager(config)

    def on_success(elapsed_ms: float):
        logger.info(f"💓 {target}: {elapsed_ms:.1f}ms")

    def on_failure():
        logger.warning(f"💔 {target}: probe failed ({manager.last_error})")

    def on_timeout():
        logger.error(f"⏰ {target}: no heartbeat within {manager.get_beat_timeout()}ms")

    manager.set_on_timeout(on_timeout)
    manager.start(target, heartbeat.get('port'), on_success, on_failure)

    try:
        await shutdown_event.wait()
    finally:
        manager.stop()

    return manager.get_stats()


async def main():
    """Main entry point"""
    logger = setup_logger("Main", "INFO")

    logger.info("Loading configuration...")
    config = load_config()

    is_valid, errors = validate_config(config)
    if not is_valid:
        logger.error("❌ Configuration validation failed:")
        for error in errors:
            logger.error(f"  - {error}")
        return

    configure(config['logging']['level'], config['logging'].get('file'))

    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown_event.set)

    stats = await run(config, shutdown_event)

    logger.info("=" * 60)
    logger.info("Heartbeat statistics:")
    for key, value in stats.items():
        logger.info(f"  {key}: {value}")
    logger.info("=" * 60)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
