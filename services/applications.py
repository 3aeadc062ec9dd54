from typing import List

from .client import ServiceClient, flag
from .schemas import (
    ApplicationStatus,
    CreateApplicationRequest,
    CreateRentalRecordRequest,
    RentalApplication,
    RentalRecord,
)


class ApplicationClient(ServiceClient):
    """
    Rental requests (solicitudes). The service itself checks that the user
    exists, has the tenant role, has approved documents and fewer than three
    active requests; rejections come back as REJECTED errors.
    """

    service_name = "Application Service"

    async def create(self, user_id: int, property_id: int) -> RentalApplication:
        body = CreateApplicationRequest(usuario_id=user_id, propiedad_id=property_id).to_wire()
        data = await self._request("POST", "/solicitudes", "create_application", json=body)
        return self._parse(RentalApplication, data, "create_application")

    async def list(self, include_details: bool = True) -> List[RentalApplication]:
        return await self._get_list(
            RentalApplication, "/solicitudes", "list_applications", params={"includeDetails": flag(include_details)}
        )

    async def get(self, application_id: int, include_details: bool = True) -> RentalApplication:
        return await self._get_model(
            RentalApplication,
            f"/solicitudes/{application_id}",
            f"get_application({application_id})",
            params={"includeDetails": flag(include_details)},
        )

    async def list_by_user(self, user_id: int, include_details: bool = True) -> List[RentalApplication]:
        return await self._get_list(
            RentalApplication,
            f"/solicitudes/usuario/{user_id}",
            f"list_applications_by_user({user_id})",
            params={"includeDetails": flag(include_details)},
        )

    async def list_by_property(self, property_id: int, include_details: bool = True) -> List[RentalApplication]:
        return await self._get_list(
            RentalApplication,
            f"/solicitudes/propiedad/{property_id}",
            f"list_applications_by_property({property_id})",
            params={"includeDetails": flag(include_details)},
        )

    async def update_status(self, application_id: int, status: ApplicationStatus) -> RentalApplication:
        data = await self._request(
            "PATCH",
            f"/solicitudes/{application_id}/estado",
            f"update_application_status({application_id})",
            json={"estado": status.value},
        )
        return self._parse(RentalApplication, data, f"update_application_status({application_id})")

    async def delete(self, application_id: int) -> None:
        await self._request("DELETE", f"/solicitudes/{application_id}", f"delete_application({application_id})")

    async def count_active(self, user_id: int) -> int:
        data = await self._request(
            "GET", f"/solicitudes/usuario/{user_id}/count-activas", f"count_active_applications({user_id})"
        )
        return int(data or 0)


class RentalRecordClient(ServiceClient):
    """Signed leases (registros) hanging off an accepted request."""

    service_name = "Application Service"

    async def create(self, request: CreateRentalRecordRequest) -> RentalRecord:
        data = await self._request("POST", "/registros", "create_rental_record", json=request.to_wire())
        return self._parse(RentalRecord, data, "create_rental_record")

    async def list(self, include_details: bool = True) -> List[RentalRecord]:
        return await self._get_list(
            RentalRecord, "/registros", "list_rental_records", params={"includeDetails": flag(include_details)}
        )

    async def get(self, record_id: int, include_details: bool = True) -> RentalRecord:
        return await self._get_model(
            RentalRecord,
            f"/registros/{record_id}",
            f"get_rental_record({record_id})",
            params={"includeDetails": flag(include_details)},
        )

    async def list_by_application(self, application_id: int, include_details: bool = True) -> List[RentalRecord]:
        return await self._get_list(
            RentalRecord,
            f"/registros/solicitud/{application_id}",
            f"list_rental_records_by_application({application_id})",
            params={"includeDetails": flag(include_details)},
        )

    async def update(self, record_id: int, changes: dict) -> RentalRecord:
        data = await self._request("PUT", f"/registros/{record_id}", f"update_rental_record({record_id})", json=changes)
        return self._parse(RentalRecord, data, f"update_rental_record({record_id})")

    async def finalize(self, record_id: int) -> RentalRecord:
        data = await self._request("PATCH", f"/registros/{record_id}/finalizar", f"finalize_rental_record({record_id})")
        return self._parse(RentalRecord, data, f"finalize_rental_record({record_id})")

    async def delete(self, record_id: int) -> None:
        await self._request("DELETE", f"/registros/{record_id}", f"delete_rental_record({record_id})")
