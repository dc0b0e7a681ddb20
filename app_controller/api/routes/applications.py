# app_controller/api/routes/applications.py
"""Read-only status API for Application records."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from app_controller.api.schemas.application import ApplicationResponse
from app_controller.core.errors import MalformedRecordError, StoreError, UnrecognizedPhaseError
from app_controller.core.models import RecordKey
from app_controller.core.repository import ApplicationRepository

router = APIRouter(prefix="/applications", tags=["applications"])


def get_repository(request: Request) -> ApplicationRepository:
    return request.app.state.repository


@router.get("", response_model=List[ApplicationResponse])
def list_applications(
    namespace: Optional[str] = None,
    repository: ApplicationRepository = Depends(get_repository),
):
    try:
        applications = repository.list(namespace)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return [ApplicationResponse.from_domain(a) for a in applications]


@router.get("/{namespace}/{name}", response_model=ApplicationResponse)
def get_application(
    namespace: str,
    name: str,
    repository: ApplicationRepository = Depends(get_repository),
):
    """
    Current observed state of one application.
    """
    try:
        application = repository.get(RecordKey(namespace, name))
    except MalformedRecordError as e:
        raise HTTPException(status_code=422, detail=e.reason)
    except UnrecognizedPhaseError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))

    if not application:
        raise HTTPException(status_code=404, detail="Application not found")

    return ApplicationResponse.from_domain(application)
