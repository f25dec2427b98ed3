"""CLI entry point for a report worker process (one consumer-group member)."""

import argparse
import asyncio
import logging
import os
import signal

IN_PROCESS_QUEUE_MESSAGE = (
    "reportflow-worker needs a shared queue (REPORTFLOW_QUEUE_BACKEND=redis). "
    "In local mode the consumer runs inside reportflow-server --local."
)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="reportflow-worker",
        description="reportflow worker: consumes report work items and generates reports",
    )
    parser.add_argument("--worker-index", type=int, default=None, help="This worker's slot (default: from settings)")
    parser.add_argument("--worker-count", type=int, default=None, help="Workers in the group (default: from settings)")
    args = parser.parse_args(argv)

    if args.worker_index is not None:
        os.environ["REPORTFLOW_WORKER_INDEX"] = str(args.worker_index)
    if args.worker_count is not None:
        os.environ["REPORTFLOW_WORKER_COUNT"] = str(args.worker_count)

    asyncio.run(run_worker())


async def run_worker() -> None:
    """Consume until SIGINT/SIGTERM, then drain in-flight records and exit."""
    from reportflow.config import Settings
    from reportflow.logging_config import configure_logging
    from reportflow.runtime import build_runtime

    cfg = Settings()
    # An in-memory queue is private to this process and would never receive work
    if cfg.effective_queue_backend == "memory":
        raise SystemExit(IN_PROCESS_QUEUE_MESSAGE)

    configure_logging(log_level=cfg.log_level, json_output=not cfg.local_mode, service="reportflow-worker")
    logger = logging.getLogger("reportflow.worker")

    runtime = await build_runtime(cfg)
    consumer = runtime.build_consumer(cfg)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await consumer.start()
    logger.info(
        "Worker %d/%d consuming %s partitions %s",
        cfg.worker_index,
        cfg.worker_count,
        cfg.request_topic,
        consumer.partitions,
    )
    try:
        await stop.wait()
        logger.info("Shutdown requested, draining in-flight work")
    finally:
        await runtime.close()


if __name__ == "__main__":
    main()
