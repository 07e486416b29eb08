"""Central router registry for module-oriented composition."""
from __future__ import annotations

from fastapi import FastAPI

from lms.modules.catalog.router import ROUTERS as CATALOG_ROUTERS
from lms.modules.coursework.router import ROUTERS as COURSEWORK_ROUTERS
from lms.modules.dashboards.router import ROUTERS as DASHBOARD_ROUTERS
from lms.modules.operator.router import ROUTERS as OPERATOR_ROUTERS

ALL_ROUTERS = CATALOG_ROUTERS + COURSEWORK_ROUTERS + DASHBOARD_ROUTERS + OPERATOR_ROUTERS


def include_all_routers(app: FastAPI) -> None:
    for router in ALL_ROUTERS:
        app.include_router(router)
