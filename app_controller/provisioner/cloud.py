# app_controller/provisioner/cloud.py
"""Managed-cloud placement."""

import logging
from abc import ABC, abstractmethod
from typing import Tuple

from app_controller.core.models import Application

logger = logging.getLogger(__name__)


class CloudProvider(ABC):
    """Creates or locates managed services for an application."""

    @abstractmethod
    def database_endpoint(self, application: Application) -> str:
        raise NotImplementedError

    @abstractmethod
    def cache_endpoint(self, application: Application) -> str:
        raise NotImplementedError

    @abstractmethod
    def object_store(self, application: Application) -> Tuple[str, str]:
        """Returns (bucket_name, endpoint)."""
        raise NotImplementedError


class SimulatedCloudProvider(CloudProvider):
    """
    Stand-in for managed RDS, ElastiCache and S3.

    Endpoints are derived from the record name only, so repeated passes agree.
    """

    def __init__(self, region: str = "us-west-2"):
        self.region = region

    def database_endpoint(self, application):
        endpoint = f"{application.name}-db.cluster.{self.region}.rds.amazonaws.com:5432"
        logger.info(f"[cloud] ☁️ simulated RDS PostgreSQL for {application.key}: {endpoint}")
        return endpoint

    def cache_endpoint(self, application):
        endpoint = f"{application.name}-cache.{self.region}.cache.amazonaws.com:6379"
        logger.info(f"[cloud] ☁️ simulated ElastiCache Redis for {application.key}: {endpoint}")
        return endpoint

    def object_store(self, application):
        object_store = application.spec.infrastructure.object_store
        bucket = object_store.bucket_name or f"{application.name}-storage"
        endpoint = f"{bucket}.s3.{self.region}.amazonaws.com"
        logger.info(f"[cloud] ☁️ simulated S3 bucket for {application.key}: {bucket}")
        return bucket, endpoint
