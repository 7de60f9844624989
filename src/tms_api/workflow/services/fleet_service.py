"""
Fleet Service

Drivers and vehicles. Both are referenced by requests, never owned by them: an entity
that any request still points at cannot be deleted.
"""

from typing import List
from typing import Optional
from uuid import uuid4

from loguru import logger

from tms_api.exceptions import DuplicateEntity
from tms_api.exceptions import EntityInUse
from tms_api.exceptions import NotFound
from tms_api.workflow.db.repository_driver import DriverRepository
from tms_api.workflow.db.repository_request import RequestRepository
from tms_api.workflow.db.repository_vehicle import VehicleRepository
from tms_api.workflow.models.fleet import Driver
from tms_api.workflow.models.fleet import DriverPayload
from tms_api.workflow.models.fleet import Vehicle
from tms_api.workflow.models.fleet import VehiclePayload


class FleetService:
    """Driver and vehicle management."""

    def __init__(self, drivers: DriverRepository, vehicles: VehicleRepository, requests: RequestRepository):
        self.drivers = drivers
        self.vehicles = vehicles
        self.requests = requests

    # ════════════════════════════════════════════════════════════════════════
    # Drivers
    # ════════════════════════════════════════════════════════════════════════

    async def list_drivers(self) -> List[Driver]:
        return [Driver.model_validate(row) for row in await self.drivers.list_all(order_by="name")]

    async def get_driver(self, driver_id: str) -> Driver:
        row = await self.drivers.get(driver_id)
        if row is None:
            raise NotFound("Driver", driver_id)
        return Driver.model_validate(row)

    async def create_driver(self, payload: DriverPayload, performed_by: str) -> Driver:
        """Add a driver. A driver whose name and contact both match an existing one is a duplicate."""
        await self._check_driver_unique(payload)
        row = await self.drivers.insert(
            {"id": str(uuid4()), "name": payload.name, "contact": payload.contact},
            performed_by=performed_by,
            duplicate_message="A driver with this name and contact already exists",
        )
        logger.info("Driver created", driver_id=row["id"])
        return Driver.model_validate(row)

    async def update_driver(self, driver_id: str, payload: DriverPayload, performed_by: str) -> Driver:
        await self.get_driver(driver_id)
        await self._check_driver_unique(payload, exclude_id=driver_id)
        row = await self.drivers.update(
            driver_id,
            {"name": payload.name, "contact": payload.contact},
            performed_by=performed_by,
            duplicate_message="A driver with this name and contact already exists",
        )
        if row is None:
            raise NotFound("Driver", driver_id)
        logger.info("Driver updated", driver_id=driver_id)
        return Driver.model_validate(row)

    async def delete_driver(self, driver_id: str, performed_by: str) -> None:
        await self.get_driver(driver_id)
        references = await self.requests.count_referencing("driver_id", driver_id)
        if references:
            raise EntityInUse(f"Driver is assigned to {references} request(s)")
        deleted = await self.drivers.delete(
            driver_id,
            performed_by=performed_by,
            in_use_message="Driver is assigned to a request",
        )
        if not deleted:
            raise NotFound("Driver", driver_id)
        logger.info("Driver deleted", driver_id=driver_id)

    async def _check_driver_unique(self, payload: DriverPayload, exclude_id: Optional[str] = None) -> None:
        existing = await self.drivers.find_by_name_and_contact(payload.name, payload.contact)
        if existing and existing["id"] != exclude_id:
            raise DuplicateEntity("A driver with this name and contact already exists")

    # ════════════════════════════════════════════════════════════════════════
    # Vehicles
    # ════════════════════════════════════════════════════════════════════════

    async def list_vehicles(self) -> List[Vehicle]:
        return [Vehicle.model_validate(row) for row in await self.vehicles.list_all(order_by="vehicle_number")]

    async def get_vehicle(self, vehicle_id: str) -> Vehicle:
        row = await self.vehicles.get(vehicle_id)
        if row is None:
            raise NotFound("Vehicle", vehicle_id)
        return Vehicle.model_validate(row)

    async def create_vehicle(self, payload: VehiclePayload, performed_by: str) -> Vehicle:
        """Add a vehicle. The vehicle number must be unique."""
        await self._check_vehicle_unique(payload)
        row = await self.vehicles.insert(
            {"id": str(uuid4()), "vehicle_number": payload.vehicle_number, "type": payload.type},
            performed_by=performed_by,
            duplicate_message=f"Vehicle number already exists: {payload.vehicle_number}",
        )
        logger.info("Vehicle created", vehicle_id=row["id"])
        return Vehicle.model_validate(row)

    async def update_vehicle(self, vehicle_id: str, payload: VehiclePayload, performed_by: str) -> Vehicle:
        await self.get_vehicle(vehicle_id)
        await self._check_vehicle_unique(payload, exclude_id=vehicle_id)
        row = await self.vehicles.update(
            vehicle_id,
            {"vehicle_number": payload.vehicle_number, "type": payload.type},
            performed_by=performed_by,
            duplicate_message=f"Vehicle number already exists: {payload.vehicle_number}",
        )
        if row is None:
            raise NotFound("Vehicle", vehicle_id)
        logger.info("Vehicle updated", vehicle_id=vehicle_id)
        return Vehicle.model_validate(row)

    async def delete_vehicle(self, vehicle_id: str, performed_by: str) -> None:
        await self.get_vehicle(vehicle_id)
        references = await self.requests.count_referencing("vehicle_id", vehicle_id)
        if references:
            raise EntityInUse(f"Vehicle is assigned to {references} request(s)")
        deleted = await self.vehicles.delete(
            vehicle_id,
            performed_by=performed_by,
            in_use_message="Vehicle is assigned to a request",
        )
        if not deleted:
            raise NotFound("Vehicle", vehicle_id)
        logger.info("Vehicle deleted", vehicle_id=vehicle_id)

    async def _check_vehicle_unique(self, payload: VehiclePayload, exclude_id: Optional[str] = None) -> None:
        existing = await self.vehicles.get_by_vehicle_number(payload.vehicle_number)
        if existing and existing["id"] != exclude_id:
            raise DuplicateEntity(f"Vehicle number already exists: {payload.vehicle_number}")
