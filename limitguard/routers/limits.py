from typing import List

from fastapi import APIRouter, Depends, Request, status

from limitguard.models import LimitIn, LimitOut
from limitguard.services.limits import LimitService, LimitVersion

router = APIRouter(prefix="/api/limits", tags=["limits"])


def get_limit_service(request: Request) -> LimitService:
    return request.app.state.limit_service


def _version_to_out(version: LimitVersion) -> LimitOut:
    return LimitOut(
        id=version.id,
        category=version.category,
        limit_sum=version.limit_sum,
        effective_from=version.effective_from,
        currency=version.currency,
        created_at=version.created_at,
    )


@router.post(
    "",
    response_model=LimitOut,
    status_code=status.HTTP_201_CREATED,
    summary="Append a new limit version for a category",
)
def create_limit(payload: LimitIn, svc: LimitService = Depends(get_limit_service)):
    # Versions are append-only; a clash on (category, instant) is answered with 409
    return _version_to_out(svc.create_limit(payload))


@router.get(
    "",
    response_model=List[LimitOut],
    summary="List limit versions, newest effective-from first",
)
def list_limits(svc: LimitService = Depends(get_limit_service)):
    return [_version_to_out(v) for v in svc.list_limits()]
