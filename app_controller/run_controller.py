# app_controller/run_controller.py
"""Run the application platform controller."""

import argparse
import logging
import signal
import sys
import threading
import time

import uvicorn

from app_controller.api.main import create_app
from app_controller.config import ControllerSettings
from app_controller.container import build_container
from app_controller.controller.watcher import KubernetesWatcher
from app_controller.infrastructure.kubernetes.client import load_cluster_config
from app_controller.infrastructure.kubernetes.cluster import KubernetesCluster
from app_controller.infrastructure.kubernetes.repository import KubernetesApplicationRepository
from app_controller.simulation import run_simulation

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Application platform controller")
    parser.add_argument(
        "--health-probe-bind-address",
        dest="health_probe_bind_address",
        help="Address the probe endpoint binds to (default :8081)",
    )
    parser.add_argument("--namespace", help="Only watch this namespace (default: all)")
    parser.add_argument("--workers", type=int, help="Number of reconcile workers")
    parser.add_argument(
        "--simulate",
        action="store_true",
        default=None,
        help="Run against in-memory stores instead of a cluster",
    )
    return parser.parse_args(argv)


def load_settings(args: argparse.Namespace) -> ControllerSettings:
    """Flags override environment and .env."""
    overrides = {
        name: value
        for name, value in vars(args).items()
        if value is not None
    }
    return ControllerSettings(**overrides)


def serve_probes(app, settings: ControllerSettings) -> threading.Thread:
    server = uvicorn.Server(uvicorn.Config(
        app,
        host=settings.probe_host,
        port=settings.probe_port,
        log_level="warning",
    ))
    thread = threading.Thread(target=server.run, name="probes", daemon=True)
    thread.start()
    return thread


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)
    settings = load_settings(args)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    logger.info("=" * 80)
    logger.info("🚀 APPLICATION PLATFORM CONTROLLER")
    logger.info("=" * 80)
    logger.info(f"Resource: {settings.plural}.{settings.group}/{settings.version}")
    logger.info(f"Namespace: {settings.namespace or 'all'}")
    logger.info(f"Workers: {settings.workers}")
    logger.info(f"Probes: {settings.health_probe_bind_address}")
    logger.info("=" * 80)

    # -------------------------
    # Simulation
    # -------------------------

    if settings.simulate or not load_cluster_config():
        logger.info("🧪 No cluster available, running in simulation mode")
        final = run_simulation(settings)
        sys.exit(0 if final.is_ready() else 1)

    # -------------------------
    # Live cluster
    # -------------------------

    repository = KubernetesApplicationRepository(
        group=settings.group,
        version=settings.version,
        plural=settings.plural,
    )
    container = build_container(settings, repository=repository, cluster=KubernetesCluster())
    controller = container.controller

    watcher = KubernetesWatcher(
        enqueue=controller.enqueue,
        repository=repository,
        group=settings.group,
        version=settings.version,
        plural=settings.plural,
        namespace=settings.namespace or None,
        resync_seconds=settings.resync_seconds,
    )

    serve_probes(create_app(repository, readiness=lambda: controller.running), settings)

    stop = threading.Event()

    def signal_handler(sig, frame):
        """Handle Ctrl+C gracefully."""
        logger.info("🛑 Shutting down controller...")
        stop.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    controller.start()
    watcher.start()

    logger.info("Press Ctrl+C to stop")

    while not stop.is_set():
        time.sleep(1)

    watcher.stop()
    controller.stop()
    logger.info("✅ Controller stopped")


if __name__ == "__main__":
    main()
