#tests\test_simulation.py

"""Test simulation mode and container wiring."""

import pytest

from app_controller.config import ControllerSettings
from app_controller.container import ambient_is_local, cloud_database_credentials
from app_controller.core.models import Phase, Placement
from app_controller.run_controller import load_settings, parse_args
from app_controller.simulation import run_simulation, sample_application


class TestSimulation:

    def test_sample_application_converges(self):
        final = run_simulation(ControllerSettings(_env_file=None))

        assert final.status.phase is Phase.READY
        assert final.status.ready_replicas == 3
        assert final.status.database_endpoint == "sample-app-postgres:5432"
        assert final.status.cache_endpoint == "sample-app-redis:6379"
        assert final.status.database_placement is Placement.LOCAL

    def test_sample_application(self):
        application = sample_application("demo")

        assert application.namespace == "demo"
        assert application.spec.infrastructure.database.version == "14.9"
        assert application.spec.infrastructure.cache.version == "7.0"


class TestSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("CONTROLLER_WORKERS", raising=False)
        settings = ControllerSettings(_env_file=None)

        assert settings.workers == 2
        assert settings.health_probe_bind_address == ":8081"
        assert settings.probe_host == "0.0.0.0"
        assert settings.probe_port == 8081
        assert settings.owner_api_version == "platform.orion.dev/v1alpha1"

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("CONTROLLER_WORKERS", "4")
        monkeypatch.setenv("CONTROLLER_AMBIENT_ENVIRONMENT", "aws")

        settings = ControllerSettings(_env_file=None)

        assert settings.workers == 4
        assert settings.ambient_environment is Placement.CLOUD

    def test_flags_override(self):
        args = parse_args(["--namespace", "team-a", "--workers", "3", "--simulate"])

        settings = load_settings(args)

        assert settings.namespace == "team-a"
        assert settings.workers == 3
        assert settings.simulate is True

    def test_ambient_override_beats_detection(self):
        settings = ControllerSettings(_env_file=None, ambient_environment="local")
        environ = {"AWS_ACCESS_KEY_ID": "a", "AWS_SECRET_ACCESS_KEY": "b"}

        assert ambient_is_local(settings, environ) is True
        assert ambient_is_local(ControllerSettings(_env_file=None), environ) is False

    @pytest.mark.parametrize("user, password, expected", [
        (None, None, None),
        ("svc", None, None),
        ("svc", "pw", ("svc", "pw")),
    ])
    def test_cloud_credentials(self, user, password, expected):
        settings = ControllerSettings(
            _env_file=None, cloud_database_user=user, cloud_database_password=password,
        )

        credentials = cloud_database_credentials(settings)

        if expected is None:
            assert credentials is None
        else:
            assert (credentials.username, credentials.password) == expected
