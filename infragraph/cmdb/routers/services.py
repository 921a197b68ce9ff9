"""Service endpoints (RPC-style).

Services hang off CMDB items; a change to one is broadcast to the item's
workspace like any other diagram change.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from infragraph.cmdb.db.tables import Service
from infragraph.cmdb.deps import Broadcaster, DbSession
from infragraph.cmdb.managers import services
from infragraph.cmdb.models.api import ServiceCreate, ServiceIconUpdate, ServiceResponse, ServiceUpdate
from infragraph.cmdb.routers.errors import domain_errors

router = APIRouter(prefix="/services", tags=["services"])


@router.post("/create", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
async def create_service(body: ServiceCreate, db: DbSession, broadcaster: Broadcaster) -> Service:
    with domain_errors():
        service = await services.create_service(db, body)
    await broadcaster.items_changed(db, service.workspace_id)
    return service


@router.get("/list", response_model=list[ServiceResponse])
async def list_services(db: DbSession, item_id: int = Query(...)) -> list[Service]:
    """List the services running on an item."""
    with domain_errors():
        return await services.list_services(db, item_id)


@router.get("/{service_id}/get", response_model=ServiceResponse)
async def get_service(service_id: int, db: DbSession) -> Service:
    with domain_errors():
        return await services.get_service(db, service_id)


@router.post("/{service_id}/update", response_model=ServiceResponse)
async def update_service(service_id: int, body: ServiceUpdate, db: DbSession, broadcaster: Broadcaster) -> Service:
    with domain_errors():
        service = await services.update_service(db, service_id, body)
    await broadcaster.items_changed(db, service.workspace_id)
    return service


@router.post("/{service_id}/icon", response_model=ServiceResponse)
async def update_service_icon(
    service_id: int, body: ServiceIconUpdate, db: DbSession, broadcaster: Broadcaster
) -> Service:
    """Switch between a preset icon and an uploaded one."""
    with domain_errors():
        service = await services.update_service_icon(db, service_id, body)
    await broadcaster.items_changed(db, service.workspace_id)
    return service


@router.post("/{service_id}/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_service(service_id: int, db: DbSession, broadcaster: Broadcaster) -> None:
    """Delete a service together with its diagram."""
    with domain_errors():
        workspace_id = await services.delete_service(db, service_id)
    await broadcaster.items_changed(db, workspace_id)
