"""Blood donation requests: anyone can submit one, admins manage them."""
from fastapi import APIRouter, Depends, Query, status

from ..auth.identity import Identity
from ..auth.roles import Role
from ..crud.collection import CollectionRepository, Record
from ..dependencies import get_store, require_access
from ..schemas.content import BloodRequest, BloodRequestCreate, BloodRequestStatus, BloodRequestUpdate
from ..services.audit_service import audit_service
from ..storage.base import KeyValueStore
from ..utils.clock import utc_now

router = APIRouter(prefix="/api/blood-requests", tags=["blood-requests"])

STORAGE_KEY = "blood_requests"

# No role carries a blood_requests permission by default, so management is
# gated on role rank instead.
require_admin = require_access(role=Role.ADMIN)


def _repository(store: KeyValueStore) -> CollectionRepository:
    return CollectionRepository(store, STORAGE_KEY, label="Blood request")


@router.post("", response_model=BloodRequest, status_code=status.HTTP_201_CREATED)
def submit_blood_request(
    payload: BloodRequestCreate,
    store: KeyValueStore = Depends(get_store),
) -> Record:
    now = utc_now().isoformat()
    return _repository(store).create(payload, status="Pending", createdAt=now, updatedAt=now)


@router.get("", response_model=list[BloodRequest])
def list_blood_requests(
    status_filter: BloodRequestStatus | None = Query(None, alias="status"),
    blood_group: str | None = Query(None, alias="bloodGroup"),
    store: KeyValueStore = Depends(get_store),
    _: Identity = Depends(require_admin),
) -> list[Record]:
    items = _repository(store).list_all()
    if status_filter:
        items = [item for item in items if item.get("status") == status_filter]
    if blood_group:
        items = [item for item in items if item.get("bloodGroup") == blood_group]
    return sorted(items, key=lambda item: str(item.get("createdAt", "")), reverse=True)


@router.put("/{request_id}", response_model=BloodRequest)
def update_blood_request(
    request_id: str,
    payload: BloodRequestUpdate,
    store: KeyValueStore = Depends(get_store),
    actor: Identity = Depends(require_admin),
) -> Record:
    record = _repository(store).update(request_id, payload, updatedAt=utc_now().isoformat())
    audit_service.log_admin_action(
        actor=actor,
        action="blood_requests.update",
        target_type="blood_requests",
        target_id=request_id,
        payload={"status": record.get("status")},
    )
    return record


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_blood_request(
    request_id: str,
    store: KeyValueStore = Depends(get_store),
    actor: Identity = Depends(require_admin),
) -> None:
    _repository(store).delete(request_id)
    audit_service.log_admin_action(
        actor=actor,
        action="blood_requests.delete",
        target_type="blood_requests",
        target_id=request_id,
    )
