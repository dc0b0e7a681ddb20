# app_controller/infrastructure/kubernetes/client.py

import logging

from kubernetes import config
from kubernetes.config.config_exception import ConfigException

logger = logging.getLogger(__name__)


def load_cluster_config() -> bool:
    """
    Load in-cluster config, falling back to the local kubeconfig.

    Returns False when neither is available (the caller falls back to simulation).
    """
    try:
        config.load_incluster_config()
        logger.info("[kubernetes] using in-cluster configuration")
        return True
    except ConfigException:
        pass

    try:
        config.load_kube_config()
        logger.info("[kubernetes] using kubeconfig")
        return True
    except (ConfigException, FileNotFoundError) as e:
        logger.warning(f"[kubernetes] no cluster configuration available: {e}")
        return False
