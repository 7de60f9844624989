"""
Fleet API Routes

Driver and vehicle management. Approvers maintain the fleet; first-line reviewers can
list it to pick an assignment when forwarding.
"""

from fastapi import APIRouter
from fastapi import Body
from fastapi import Depends
from fastapi import Path
from fastapi import status

from tms_api.dependencies import get_fleet_service
from tms_api.dependencies import require_roles
from tms_api.schemas.schemas import DriverResponse
from tms_api.schemas.schemas import DriversResponse
from tms_api.schemas.schemas import MessageResponse
from tms_api.schemas.schemas import VehicleResponse
from tms_api.schemas.schemas import VehiclesResponse
from tms_api.workflow.enums import UserRole
from tms_api.workflow.models.fleet import DriverPayload
from tms_api.workflow.models.fleet import VehiclePayload
from tms_api.workflow.models.user import Actor
from tms_api.workflow.services.fleet_service import FleetService

ROUTER_FLEET = APIRouter(tags=["Fleet"], prefix="/fleet")

require_approver = require_roles(UserRole.APPROVER)
require_reviewer = require_roles(UserRole.APPROVER, UserRole.FIRST_LINE_REVIEWER)

WRITE_RESPONSES = {
    status.HTTP_403_FORBIDDEN: {"description": "Approvers only"},
    status.HTTP_404_NOT_FOUND: {"description": "Not found"},
    status.HTTP_409_CONFLICT: {"description": "Duplicate, or still assigned to a request"},
}


# ════════════════════════════════════════════════════════════════════════════
# Drivers
# ════════════════════════════════════════════════════════════════════════════


@ROUTER_FLEET.get("/drivers", response_model=DriversResponse, summary="List drivers")
async def list_drivers(
    actor: Actor = Depends(require_reviewer),
    fleet: FleetService = Depends(get_fleet_service),
) -> DriversResponse:
    drivers = await fleet.list_drivers()
    return DriversResponse(Message=f"Found {len(drivers)} driver(s)", Count=len(drivers), Drivers=drivers)


@ROUTER_FLEET.post(
    "/drivers",
    response_model=DriverResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a driver",
    responses=WRITE_RESPONSES,
)
async def create_driver(
    payload: DriverPayload = Body(...),
    actor: Actor = Depends(require_approver),
    fleet: FleetService = Depends(get_fleet_service),
) -> DriverResponse:
    driver = await fleet.create_driver(payload, performed_by=actor.id)
    return DriverResponse(Message=f"Driver created: {driver.name}", Driver=driver)


@ROUTER_FLEET.put(
    "/drivers/{driver_id}", response_model=DriverResponse, summary="Update a driver", responses=WRITE_RESPONSES
)
async def update_driver(
    driver_id: str = Path(..., description="Driver id"),
    payload: DriverPayload = Body(...),
    actor: Actor = Depends(require_approver),
    fleet: FleetService = Depends(get_fleet_service),
) -> DriverResponse:
    driver = await fleet.update_driver(driver_id, payload, performed_by=actor.id)
    return DriverResponse(Message=f"Driver updated: {driver.name}", Driver=driver)


@ROUTER_FLEET.delete(
    "/drivers/{driver_id}", response_model=MessageResponse, summary="Delete a driver", responses=WRITE_RESPONSES
)
async def delete_driver(
    driver_id: str = Path(..., description="Driver id"),
    actor: Actor = Depends(require_approver),
    fleet: FleetService = Depends(get_fleet_service),
) -> MessageResponse:
    """Delete a driver no request refers to."""
    await fleet.delete_driver(driver_id, performed_by=actor.id)
    return MessageResponse(Message=f"Driver deleted: {driver_id}")


# ════════════════════════════════════════════════════════════════════════════
# Vehicles
# ════════════════════════════════════════════════════════════════════════════


@ROUTER_FLEET.get("/vehicles", response_model=VehiclesResponse, summary="List vehicles")
async def list_vehicles(
    actor: Actor = Depends(require_reviewer),
    fleet: FleetService = Depends(get_fleet_service),
) -> VehiclesResponse:
    vehicles = await fleet.list_vehicles()
    return VehiclesResponse(Message=f"Found {len(vehicles)} vehicle(s)", Count=len(vehicles), Vehicles=vehicles)


@ROUTER_FLEET.post(
    "/vehicles",
    response_model=VehicleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a vehicle",
    responses=WRITE_RESPONSES,
)
async def create_vehicle(
    payload: VehiclePayload = Body(...),
    actor: Actor = Depends(require_approver),
    fleet: FleetService = Depends(get_fleet_service),
) -> VehicleResponse:
    vehicle = await fleet.create_vehicle(payload, performed_by=actor.id)
    return VehicleResponse(Message=f"Vehicle created: {vehicle.vehicle_number}", Vehicle=vehicle)


@ROUTER_FLEET.put(
    "/vehicles/{vehicle_id}", response_model=VehicleResponse, summary="Update a vehicle", responses=WRITE_RESPONSES
)
async def update_vehicle(
    vehicle_id: str = Path(..., description="Vehicle id"),
    payload: VehiclePayload = Body(...),
    actor: Actor = Depends(require_approver),
    fleet: FleetService = Depends(get_fleet_service),
) -> VehicleResponse:
    vehicle = await fleet.update_vehicle(vehicle_id, payload, performed_by=actor.id)
    return VehicleResponse(Message=f"Vehicle updated: {vehicle.vehicle_number}", Vehicle=vehicle)


@ROUTER_FLEET.delete(
    "/vehicles/{vehicle_id}", response_model=MessageResponse, summary="Delete a vehicle", responses=WRITE_RESPONSES
)
async def delete_vehicle(
    vehicle_id: str = Path(..., description="Vehicle id"),
    actor: Actor = Depends(require_approver),
    fleet: FleetService = Depends(get_fleet_service),
) -> MessageResponse:
    """Delete a vehicle no request refers to."""
    await fleet.delete_vehicle(vehicle_id, performed_by=actor.id)
    return MessageResponse(Message=f"Vehicle deleted: {vehicle_id}")
