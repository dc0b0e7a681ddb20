# app_controller/controller/watcher.py
"""Trigger sources: Kubernetes watches plus a periodic resync."""

import logging
import threading
from typing import Callable, List, Optional

from kubernetes import client, watch
from kubernetes.client.rest import ApiException

from app_controller.cluster.objects import MANAGED_BY, OWNER_KIND
from app_controller.core.models import RecordKey
from app_controller.core.repository import ApplicationRepository

logger = logging.getLogger(__name__)


Enqueue = Callable[[RecordKey], None]


class KubernetesWatcher:
    """
    Feeds keys to the controller from three sources:

    1. Application custom resource events
    2. Deployment events for objects this controller owns (mapped to the owner)
    3. A resync listing every Application on an interval
    """

    def __init__(
        self,
        *,
        enqueue: Enqueue,
        repository: ApplicationRepository,
        group: str,
        version: str,
        plural: str,
        namespace: Optional[str] = None,
        resync_seconds: float = 300.0,
        watch_timeout_seconds: int = 60,
    ):
        self._enqueue = enqueue
        self._repository = repository
        self._group = group
        self._version = version
        self._plural = plural
        self._namespace = namespace
        self._resync_seconds = resync_seconds
        self._watch_timeout_seconds = watch_timeout_seconds

        self._custom = client.CustomObjectsApi()
        self._apps = client.AppsV1Api()

        self._stop_event = threading.Event()
        self._threads: List[threading.Thread] = []

    def start(self):
        logger.info(
            f"[watcher] 👀 Watching {self._plural}.{self._group}/{self._version} "
            f"in {self._namespace or 'all namespaces'} (resync {self._resync_seconds}s)"
        )
        for name, target in (
            ("watch-applications", self._watch_applications),
            ("watch-deployments", self._watch_deployments),
            ("resync", self._resync_loop),
        ):
            thread = threading.Thread(target=target, name=name, daemon=True)
            thread.start()
            self._threads.append(thread)

    def stop(self):
        logger.info("[watcher] Stopping")
        self._stop_event.set()

    # -------------------------
    # Applications
    # -------------------------

    def _watch_applications(self):
        while not self._stop_event.is_set():
            stream = watch.Watch()
            try:
                if self._namespace:
                    func, args = self._custom.list_namespaced_custom_object, (
                        self._group, self._version, self._namespace, self._plural,
                    )
                else:
                    func, args = self._custom.list_cluster_custom_object, (
                        self._group, self._version, self._plural,
                    )

                for event in stream.stream(func, *args, timeout_seconds=self._watch_timeout_seconds):
                    if self._stop_event.is_set():
                        break
                    metadata = event["object"].get("metadata", {})
                    key = RecordKey(metadata.get("namespace", "default"), metadata["name"])
                    logger.debug(f"[watcher] {event['type']} application {key}")
                    if event["type"] != "DELETED":
                        self._enqueue(key)
            except ApiException as e:
                logger.warning(f"[watcher] application watch failed: {e.status} {e.reason}")
                self._stop_event.wait(5)
            except Exception as e:
                logger.error(f"[watcher] application watch error: {e}", exc_info=True)
                self._stop_event.wait(5)
            finally:
                stream.stop()

    # -------------------------
    # Owned deployments
    # -------------------------

    def _watch_deployments(self):
        selector = f"managed-by={MANAGED_BY}"

        while not self._stop_event.is_set():
            stream = watch.Watch()
            try:
                if self._namespace:
                    func, args = self._apps.list_namespaced_deployment, (self._namespace,)
                else:
                    func, args = self._apps.list_deployment_for_all_namespaces, ()

                for event in stream.stream(
                    func, *args,
                    label_selector=selector,
                    timeout_seconds=self._watch_timeout_seconds,
                ):
                    if self._stop_event.is_set():
                        break
                    key = owner_key(event["object"])
                    if key is not None:
                        self._enqueue(key)
            except ApiException as e:
                logger.warning(f"[watcher] deployment watch failed: {e.status} {e.reason}")
                self._stop_event.wait(5)
            except Exception as e:
                logger.error(f"[watcher] deployment watch error: {e}", exc_info=True)
                self._stop_event.wait(5)
            finally:
                stream.stop()

    # -------------------------
    # Resync
    # -------------------------

    def _resync_loop(self):
        while not self._stop_event.is_set():
            self.resync()
            self._stop_event.wait(self._resync_seconds)

    def resync(self) -> int:
        """Enqueue every known Application. Returns how many were queued."""
        try:
            applications = list(self._repository.list(self._namespace))
        except Exception as e:
            logger.warning(f"[watcher] resync failed: {e}")
            return 0

        for application in applications:
            self._enqueue(application.key)

        logger.debug(f"[watcher] resync queued {len(applications)} applications")
        return len(applications)


def owner_key(obj) -> Optional[RecordKey]:
    """Key of the Application controlling obj, if any."""
    metadata = obj.metadata
    for ref in metadata.owner_references or []:
        if ref.kind == OWNER_KIND and ref.controller:
            return RecordKey(metadata.namespace, ref.name)
    return None
