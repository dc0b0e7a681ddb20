#app_controller\engine\config.py
from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class RequeuePolicy:
    after_provisioning: timedelta = timedelta(seconds=10)
    deploy_poll: timedelta = timedelta(seconds=15)

    readiness_error: timedelta = timedelta(seconds=30)
    persist_error: timedelta = timedelta(seconds=30)
    load_error: timedelta = timedelta(seconds=30)

    unrecognized_phase: timedelta = timedelta(minutes=1)
    synthesis_failure: timedelta = timedelta(minutes=2)
    provisioning_failure: timedelta = timedelta(minutes=5)

    ready_heartbeat: timedelta = timedelta(minutes=5)
