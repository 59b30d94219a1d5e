from matchday.routers.api_test import router as api_test_router
from matchday.routers.db_status import router as db_status_router
from matchday.routers.debug import router as debug_router
from matchday.routers.fixtures import router as fixtures_router
from matchday.routers.health import router as health_router
from matchday.routers.insights import router as insights_router
from matchday.routers.teams import router as teams_router
from matchday.routers.warm import router as warm_router

__all__ = [
    "health_router",
    "db_status_router",
    "api_test_router",
    "debug_router",
    "fixtures_router",
    "insights_router",
    "teams_router",
    "warm_router",
]
