"""
Public site content: activities, achievements, team, gallery and reports.

Reads are public. Writes go through the access guard with the collection's
resource and the matching action, and are recorded in the audit log.
"""
from dataclasses import dataclass
from typing import Any, Callable

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from ..auth.identity import Identity
from ..auth.roles import Action, Resource
from ..crud.collection import CollectionRepository, Record
from ..dependencies import get_store, require_access
from ..schemas.content import (
    Achievement,
    AchievementCreate,
    AchievementUpdate,
    Activity,
    ActivityCreate,
    ActivityUpdate,
    GalleryImage,
    GalleryImageCreate,
    GalleryImageUpdate,
    MonthlyReport,
    MonthlyReportCreate,
    MonthlyReportUpdate,
    TeamMember,
    TeamMemberCreate,
    TeamMemberUpdate,
)
from ..services.audit_service import audit_service
from ..storage.base import KeyValueStore

Ordering = Callable[[list[Record]], list[Record]]


def newest_date_first(items: list[Record]) -> list[Record]:
    return sorted(items, key=lambda item: str(item.get("date", "")), reverse=True)


def by_month(items: list[Record]) -> list[Record]:
    return sorted(items, key=lambda item: str(item.get("month", "")))


def insertion_order(items: list[Record]) -> list[Record]:
    return list(items)


@dataclass(frozen=True)
class Collection:
    path: str
    storage_key: str
    resource: Resource
    label: str
    create_model: type[BaseModel]
    update_model: type[BaseModel]
    read_model: type[BaseModel]
    ordering: Ordering = insertion_order
    year_filter: bool = False

    def repository(self, store: KeyValueStore) -> CollectionRepository:
        return CollectionRepository(store, self.storage_key, label=self.label)


COLLECTIONS: tuple[Collection, ...] = (
    Collection(
        path="activities",
        storage_key="activities",
        resource=Resource.ACTIVITIES,
        label="Activity",
        create_model=ActivityCreate,
        update_model=ActivityUpdate,
        read_model=Activity,
        ordering=newest_date_first,
    ),
    Collection(
        path="achievements",
        storage_key="achievements",
        resource=Resource.ACHIEVEMENTS,
        label="Achievement",
        create_model=AchievementCreate,
        update_model=AchievementUpdate,
        read_model=Achievement,
    ),
    Collection(
        path="team",
        storage_key="team_members",
        resource=Resource.TEAM,
        label="Team member",
        create_model=TeamMemberCreate,
        update_model=TeamMemberUpdate,
        read_model=TeamMember,
    ),
    Collection(
        path="gallery",
        storage_key="gallery",
        resource=Resource.GALLERY,
        label="Gallery image",
        create_model=GalleryImageCreate,
        update_model=GalleryImageUpdate,
        read_model=GalleryImage,
        ordering=newest_date_first,
    ),
    Collection(
        path="reports",
        storage_key="reports",
        resource=Resource.REPORTS,
        label="Report",
        create_model=MonthlyReportCreate,
        update_model=MonthlyReportUpdate,
        read_model=MonthlyReport,
        ordering=by_month,
        year_filter=True,
    ),
)


def build_collection_router(collection: Collection) -> APIRouter:
    router = APIRouter(prefix=f"/api/{collection.path}", tags=[collection.path])
    create_model = collection.create_model
    update_model = collection.update_model
    read_model = collection.read_model
    resource = collection.resource.value

    def _audit(actor: Identity, action: Action, item_id: str, payload: dict[str, Any] | None = None) -> None:
        audit_service.log_admin_action(
            actor=actor,
            action=f"{resource}.{action.value}",
            target_type=resource,
            target_id=item_id,
            payload=payload,
        )

    if collection.year_filter:

        @router.get("", response_model=list[read_model])
        def list_items(
            year: str | None = Query(None),
            store: KeyValueStore = Depends(get_store),
        ) -> list[Record]:
            items = collection.repository(store).list_all()
            if year:
                items = [item for item in items if item.get("year") == year]
            return collection.ordering(items)

    else:

        @router.get("", response_model=list[read_model])
        def list_items(store: KeyValueStore = Depends(get_store)) -> list[Record]:
            return collection.ordering(collection.repository(store).list_all())

    @router.get("/{item_id}", response_model=read_model)
    def get_item(item_id: str, store: KeyValueStore = Depends(get_store)) -> Record:
        return collection.repository(store).get(item_id)

    @router.post("", response_model=read_model, status_code=status.HTTP_201_CREATED)
    def create_item(
        payload: create_model,
        store: KeyValueStore = Depends(get_store),
        actor: Identity = Depends(require_access(resource=resource, action=Action.CREATE)),
    ) -> Record:
        record = collection.repository(store).create(payload)
        _audit(actor, Action.CREATE, record["id"])
        return record

    @router.put("/{item_id}", response_model=read_model)
    def update_item(
        item_id: str,
        payload: update_model,
        store: KeyValueStore = Depends(get_store),
        actor: Identity = Depends(require_access(resource=resource, action=Action.UPDATE)),
    ) -> Record:
        record = collection.repository(store).update(item_id, payload)
        _audit(
            actor,
            Action.UPDATE,
            item_id,
            {"fields": sorted(payload.model_dump(by_alias=True, exclude_unset=True))},
        )
        return record

    @router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_item(
        item_id: str,
        store: KeyValueStore = Depends(get_store),
        actor: Identity = Depends(require_access(resource=resource, action=Action.DELETE)),
    ) -> None:
        collection.repository(store).delete(item_id)
        _audit(actor, Action.DELETE, item_id)

    return router


routers = [build_collection_router(collection) for collection in COLLECTIONS]
