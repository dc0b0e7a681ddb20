#tests\test_provisioner.py

"""Test infrastructure provisioning."""

import pytest

from app_controller.cluster.objects import (
    DEPLOYMENT, MANAGED_BY, PERSISTENT_VOLUME_CLAIM, SERVICE, STATEFUL_SET,
)
from app_controller.core.errors import ProvisioningError, StoreError
from app_controller.core.models import Environment, InfrastructureKind, Placement
from app_controller.environment.resolver import EnvironmentResolver
from app_controller.provisioner.cloud import SimulatedCloudProvider
from app_controller.provisioner.provisioner import InfrastructureProvisioner


class TestLocalProvisioning:
    """Test in-cluster database, cache and object store."""

    def test_local_database_objects(self, provisioner, cluster, make_application):
        application = make_application(database=True)

        result = provisioner.provision_database(application)

        assert result.endpoint == "simple-nginx-postgres:5432"
        assert result.placement is Placement.LOCAL
        assert cluster.exists(PERSISTENT_VOLUME_CLAIM, "default", "simple-nginx-postgres-pvc")
        assert cluster.exists(STATEFUL_SET, "default", "simple-nginx-postgres")
        assert cluster.exists(SERVICE, "default", "simple-nginx-postgres")

        assert application.status.database_endpoint == "simple-nginx-postgres:5432"
        assert application.status.database_placement is Placement.LOCAL

    def test_database_container(self, provisioner, cluster, make_application):
        application = make_application(database=True)
        application.spec.infrastructure.database.version = "14.9"

        provisioner.provision_database(application)

        stateful_set = cluster.read(STATEFUL_SET, "default", "simple-nginx-postgres")
        container = stateful_set.spec.template.spec.containers[0]
        env = {e.name: e.value for e in container.env}

        assert container.image == "postgres:14.9"
        assert env["POSTGRES_DB"] == "webapp"
        assert env["POSTGRES_USER"] == "appuser"
        assert env["POSTGRES_PASSWORD"] == "localpassword"

        claim = cluster.read(PERSISTENT_VOLUME_CLAIM, "default", "simple-nginx-postgres-pvc")
        assert claim.spec.resources.requests == {"storage": "2Gi"}

    def test_local_cache(self, provisioner, cluster, make_application):
        application = make_application(cache=True)

        result = provisioner.provision_cache(application)

        assert result.endpoint == "simple-nginx-redis:6379"
        deployment = cluster.read(DEPLOYMENT, "default", "simple-nginx-redis")
        assert deployment.spec.template.spec.containers[0].image == "redis:7"
        assert cluster.exists(SERVICE, "default", "simple-nginx-redis")

    def test_local_object_store(self, provisioner, cluster, make_application):
        application = make_application(object_store=True)

        result = provisioner.provision_object_store(application)

        assert result.endpoint == "simple-nginx-s3:9000"
        assert result.bucket_name == "default-bucket"
        assert application.status.object_store_bucket == "default-bucket"

        service = cluster.read(SERVICE, "default", "simple-nginx-s3")
        assert sorted(p.port for p in service.spec.ports) == [9000, 9001]

    def test_labels_and_owner_reference(self, provisioner, cluster, make_application):
        application = make_application(database=True, cache=True, object_store=True)

        provisioner.provision_all(application)

        objects = cluster.objects()
        assert len(objects) == 7
        for obj in objects:
            assert obj.metadata.labels["app"] == "simple-nginx"
            assert obj.metadata.labels["managed-by"] == MANAGED_BY
            assert "component" in obj.metadata.labels

            owner = obj.metadata.owner_references[0]
            assert owner.kind == "Application"
            assert owner.name == "simple-nginx"
            assert owner.uid == "uid-simple-nginx"
            assert owner.controller is True
            assert owner.block_owner_deletion is True

    def test_provision_all_order(self, provisioner, make_application):
        application = make_application(database=True, cache=True, object_store=True)

        results = provisioner.provision_all(application)

        assert [r.kind for r in results] == [
            InfrastructureKind.DATABASE,
            InfrastructureKind.CACHE,
            InfrastructureKind.OBJECT_STORE,
        ]

    def test_nothing_requested(self, provisioner, cluster, make_application):
        assert provisioner.provision_all(make_application()) == []
        assert cluster.objects() == []


class TestIdempotency:

    def test_second_pass_tolerates_existing_objects(self, provisioner, cluster, make_application):
        application = make_application(database=True, cache=True)

        first = provisioner.provision_all(application)
        second = provisioner.provision_all(application)

        assert [r.endpoint for r in first] == [r.endpoint for r in second]
        assert len(cluster.created) == 5

    def test_store_error_becomes_provisioning_error(self, provisioner, cluster, make_application):
        cluster.fail_creates[STATEFUL_SET] = StoreError("quota exceeded")
        application = make_application(database=True)

        with pytest.raises(ProvisioningError) as excinfo:
            provisioner.provision_database(application)

        assert excinfo.value.kind is InfrastructureKind.DATABASE
        assert "quota exceeded" in str(excinfo.value)
        assert application.status.database_endpoint == ""


class TestCloudProvisioning:

    def test_cloud_endpoints(self, provisioner, cluster, make_application):
        application = make_application(
            database=True, cache=True, object_store=True, environment=Environment.CLOUD,
        )

        provisioner.provision_all(application)

        status = application.status
        assert status.database_endpoint == "simple-nginx-db.cluster.us-west-2.rds.amazonaws.com:5432"
        assert status.cache_endpoint == "simple-nginx-cache.us-west-2.cache.amazonaws.com:6379"
        assert status.object_store_bucket == "simple-nginx-storage"
        assert status.object_store_endpoint == "simple-nginx-storage.s3.us-west-2.amazonaws.com"
        assert status.database_placement is Placement.CLOUD
        assert cluster.objects() == []

    def test_cloud_bucket_name(self, provisioner, make_application):
        application = make_application(object_store=True, environment=Environment.CLOUD)
        application.spec.infrastructure.object_store.bucket_name = "assets"

        result = provisioner.provision_object_store(application)

        assert result.bucket_name == "assets"
        assert result.endpoint == "assets.s3.us-west-2.amazonaws.com"

    def test_mixed_placement(self, provisioner, cluster, make_application):
        application = make_application(database=True, cache=True, environment=Environment.CLOUD)
        application.spec.infrastructure.cache.environment = Environment.LOCAL

        provisioner.provision_all(application)

        assert application.status.database_placement is Placement.CLOUD
        assert application.status.cache_placement is Placement.LOCAL
        assert cluster.exists(DEPLOYMENT, "default", "simple-nginx-redis")


class TestStickyPlacement:

    def test_recorded_placement_wins(self, cluster, secrets, make_application):
        application = make_application(database=True, environment=Environment.AUTO)
        application.spec.infrastructure.database.environment = Environment.AUTO

        local = InfrastructureProvisioner(
            cluster=cluster,
            resolver=EnvironmentResolver(ambient_is_local=True),
            secrets=secrets,
            cloud=SimulatedCloudProvider(),
        )
        local.provision_database(application)
        assert application.status.database_placement is Placement.LOCAL

        # Ambient flips to cloud between passes
        cloud = InfrastructureProvisioner(
            cluster=cluster,
            resolver=EnvironmentResolver(ambient_is_local=False),
            secrets=secrets,
            cloud=SimulatedCloudProvider(),
        )
        result = cloud.provision_database(application)

        assert result.placement is Placement.LOCAL
        assert application.status.database_endpoint == "simple-nginx-postgres:5432"

    def test_spec_edit_does_not_move_resource(self, provisioner, make_application):
        application = make_application(cache=True)
        provisioner.provision_cache(application)

        application.spec.infrastructure.cache.environment = Environment.CLOUD
        result = provisioner.provision_cache(application)

        assert result.placement is Placement.LOCAL
