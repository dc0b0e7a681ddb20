#tests\test_resolver.py

"""Test placement resolution."""

import pytest

from app_controller.core.models import (
    DatabaseSpec, Environment, InfrastructureKind, Placement,
)
from app_controller.environment.resolver import (
    EnvironmentResolver, detect_ambient_is_local, resolve_placement,
)


L, C, A = Environment.LOCAL, Environment.CLOUD, Environment.AUTO


class TestResolvePlacement:
    """Resource setting, then application setting, then ambient."""

    @pytest.mark.parametrize("resource_env, app_env, ambient_is_local, expected", [
        (L, C, False, Placement.LOCAL),
        (C, L, True, Placement.CLOUD),
        (A, L, False, Placement.LOCAL),
        (A, C, True, Placement.CLOUD),
        (None, L, False, Placement.LOCAL),
        (None, C, True, Placement.CLOUD),
        (A, A, True, Placement.LOCAL),
        (A, A, False, Placement.CLOUD),
        (None, None, True, Placement.LOCAL),
        (None, None, False, Placement.CLOUD),
        (None, A, False, Placement.CLOUD),
    ])
    def test_precedence(self, resource_env, app_env, ambient_is_local, expected):
        assert resolve_placement(resource_env, app_env, ambient_is_local) is expected


class TestDetectAmbient:
    """Test ambient detection from environment variables."""

    def test_empty_environment_is_local(self):
        assert detect_ambient_is_local({}) is True

    def test_aws_credentials_mean_cloud(self):
        environ = {"AWS_ACCESS_KEY_ID": "AKIA", "AWS_SECRET_ACCESS_KEY": "secret"}
        assert detect_ambient_is_local(environ) is False

    def test_partial_credentials_stay_local(self):
        assert detect_ambient_is_local({"AWS_ACCESS_KEY_ID": "AKIA"}) is True

    def test_in_cluster_with_region_means_cloud(self):
        environ = {"KUBERNETES_SERVICE_HOST": "10.0.0.1", "AWS_REGION": "eu-west-1"}
        assert detect_ambient_is_local(environ) is False

    def test_in_cluster_with_gcp_project_means_cloud(self):
        environ = {"KUBERNETES_SERVICE_HOST": "10.0.0.1", "GCP_PROJECT": "demo"}
        assert detect_ambient_is_local(environ) is False

    def test_in_cluster_alone_is_local(self):
        assert detect_ambient_is_local({"KUBERNETES_SERVICE_HOST": "10.0.0.1"}) is True


class TestEnvironmentResolver:
    """Test per-kind resolution on an application."""

    def test_resource_setting_overrides_application(self, make_application):
        application = make_application(database=True, cache=True, environment=Environment.CLOUD)
        application.spec.infrastructure.database = DatabaseSpec(environment=Environment.LOCAL)

        resolver = EnvironmentResolver(ambient_is_local=True)

        assert resolver.placement_for(application, InfrastructureKind.DATABASE) is Placement.LOCAL
        assert resolver.placement_for(application, InfrastructureKind.CACHE) is Placement.CLOUD

    def test_auto_uses_injected_ambient(self, make_application):
        application = make_application(cache=True, environment=Environment.AUTO)

        assert EnvironmentResolver(True).placement_for(
            application, InfrastructureKind.CACHE) is Placement.LOCAL
        assert EnvironmentResolver(False).placement_for(
            application, InfrastructureKind.CACHE) is Placement.CLOUD

    def test_describe(self, make_application):
        application = make_application(database=True, object_store=True)

        assert EnvironmentResolver(True).describe(application) == "postgres=local, s3=local"
        assert EnvironmentResolver(True).describe(make_application()) == "none"
