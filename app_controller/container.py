#app_controller\container.py

"""Dependency injection container - wires all services together."""

from dataclasses import dataclass
from typing import Mapping, Optional

from app_controller.config import ControllerSettings
from app_controller.controller.controller import Controller
from app_controller.core.events import LoggingEventEmitter, MultiEventEmitter
from app_controller.core.models import Placement
from app_controller.core.repository import ApplicationRepository, ClusterClient
from app_controller.engine.config import RequeuePolicy
from app_controller.engine.engine import ReconciliationEngine
from app_controller.environment.resolver import EnvironmentResolver, detect_ambient_is_local
from app_controller.provisioner.cloud import SimulatedCloudProvider
from app_controller.provisioner.provisioner import InfrastructureProvisioner
from app_controller.synthesizer.secrets import Credentials, LocalDevelopmentSecrets
from app_controller.synthesizer.synthesizer import WorkloadSynthesizer


@dataclass
class Container:
    settings: ControllerSettings
    repository: ApplicationRepository
    cluster: ClusterClient
    resolver: EnvironmentResolver
    events: LoggingEventEmitter
    engine: ReconciliationEngine
    controller: Controller


def ambient_is_local(settings: ControllerSettings, environ: Optional[Mapping[str, str]] = None) -> bool:
    """Settings override wins over detection."""
    if settings.ambient_environment is not None:
        return settings.ambient_environment is Placement.LOCAL
    return detect_ambient_is_local(environ)


def cloud_database_credentials(settings: ControllerSettings) -> Optional[Credentials]:
    if settings.cloud_database_user is None or settings.cloud_database_password is None:
        return None
    return Credentials(
        username=settings.cloud_database_user.get_secret_value(),
        password=settings.cloud_database_password.get_secret_value(),
    )


def build_container(
    settings: ControllerSettings,
    *,
    repository: ApplicationRepository,
    cluster: ClusterClient,
    environ: Optional[Mapping[str, str]] = None,
    policy: Optional[RequeuePolicy] = None,
) -> Container:

    # ============================================
    # PLACEMENT
    # ============================================

    resolver = EnvironmentResolver(ambient_is_local(settings, environ))
    secrets = LocalDevelopmentSecrets(cloud_database=cloud_database_credentials(settings))

    # ============================================
    # EVENTS
    # ============================================

    events = LoggingEventEmitter()
    emitters = MultiEventEmitter([events])

    # ============================================
    # SERVICES
    # ============================================

    provisioner = InfrastructureProvisioner(
        cluster=cluster,
        resolver=resolver,
        secrets=secrets,
        cloud=SimulatedCloudProvider(region=settings.cloud_region),
        owner_api_version=settings.owner_api_version,
    )

    synthesizer = WorkloadSynthesizer(secrets, owner_api_version=settings.owner_api_version)

    engine = ReconciliationEngine(
        repository=repository,
        cluster=cluster,
        provisioner=provisioner,
        synthesizer=synthesizer,
        emitter=emitters,
        policy=policy,
    )

    controller = Controller(engine=engine, workers=settings.workers)

    return Container(
        settings=settings,
        repository=repository,
        cluster=cluster,
        resolver=resolver,
        events=events,
        engine=engine,
        controller=controller,
    )
