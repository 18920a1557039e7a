from fastapi import APIRouter, Depends

from ..auth.identity import Identity
from ..auth.roles import Action, Resource
from ..crud.collection import CollectionRepository
from ..dependencies import get_store, require_access
from ..schemas.content import DashboardStats
from ..storage.base import KeyValueStore

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("", response_model=DashboardStats)
def dashboard_stats(
    store: KeyValueStore = Depends(get_store),
    _: Identity = Depends(require_access(resource=Resource.DASHBOARD, action=Action.READ)),
) -> DashboardStats:
    def count(key: str) -> int:
        return CollectionRepository(store, key).count()

    return DashboardStats(
        team_members=count("team_members"),
        activities=count("activities"),
        achievements=count("achievements"),
        gallery_images=count("gallery"),
        reports=count("reports"),
    )
