from fastapi import APIRouter, Depends, status

from ..auth.credentials import UserDirectory
from ..auth.identity import Identity
from ..auth.roles import Action, Resource
from ..dependencies import get_user_directory, require_access
from ..schemas.auth import UserRead
from ..schemas.user import RoleCount, UserCreate, UserUpdate
from ..services.audit_service import audit_service
from ..services.user_admin import UserAdminService

router = APIRouter(prefix="/api/users", tags=["users"])

USERS = Resource.USERS


def _service(directory: UserDirectory, actor: Identity) -> UserAdminService:
    return UserAdminService(directory, actor)


@router.get("", response_model=list[UserRead])
def list_users(
    directory: UserDirectory = Depends(get_user_directory),
    actor: Identity = Depends(require_access(resource=USERS, action=Action.READ)),
) -> list[UserRead]:
    return [UserRead.from_identity(user) for user in _service(directory, actor).list_users()]


@router.get("/stats", response_model=list[RoleCount])
def user_stats(
    directory: UserDirectory = Depends(get_user_directory),
    actor: Identity = Depends(require_access(resource=USERS, action=Action.READ)),
) -> list[RoleCount]:
    return _service(directory, actor).role_stats()


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    directory: UserDirectory = Depends(get_user_directory),
    actor: Identity = Depends(require_access(resource=USERS, action=Action.CREATE)),
) -> UserRead:
    user = _service(directory, actor).create_user(payload)
    audit_service.log_admin_action(
        actor=actor,
        action="users.create",
        target_type="users",
        target_id=user.id,
        payload={"username": user.username, "role": user.role},
    )
    return UserRead.from_identity(user)


@router.put("/{user_id}", response_model=UserRead)
def update_user(
    user_id: str,
    payload: UserUpdate,
    directory: UserDirectory = Depends(get_user_directory),
    actor: Identity = Depends(require_access(resource=USERS, action=Action.UPDATE)),
) -> UserRead:
    user = _service(directory, actor).update_user(user_id, payload)
    changed = payload.model_dump(by_alias=True, exclude_unset=True, exclude={"password"})
    audit_service.log_admin_action(
        actor=actor,
        action="users.update",
        target_type="users",
        target_id=user.id,
        payload={**changed, "passwordChanged": payload.password is not None},
    )
    return UserRead.from_identity(user)


@router.post("/{user_id}/toggle-active", response_model=UserRead)
def toggle_user_active(
    user_id: str,
    directory: UserDirectory = Depends(get_user_directory),
    actor: Identity = Depends(require_access(resource=USERS, action=Action.UPDATE)),
) -> UserRead:
    user = _service(directory, actor).toggle_active(user_id)
    audit_service.log_admin_action(
        actor=actor,
        action="users.toggle_active",
        target_type="users",
        target_id=user.id,
        payload={"isActive": user.is_active},
    )
    return UserRead.from_identity(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: str,
    directory: UserDirectory = Depends(get_user_directory),
    actor: Identity = Depends(require_access(resource=USERS, action=Action.DELETE)),
) -> None:
    removed = _service(directory, actor).delete_user(user_id)
    audit_service.log_admin_action(
        actor=actor,
        action="users.delete",
        target_type="users",
        target_id=removed.id,
        payload={"username": removed.username},
    )
