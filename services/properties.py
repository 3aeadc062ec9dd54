from typing import List, Optional

from .client import ServiceClient, flag
from .schemas import Comuna, CreatePropertyRequest, Lookup, Photo, Property, PropertyFilters, Region


class PropertyClient(ServiceClient):
    """
    Listings plus the lookup tables (regions, comunas, types, categories).
    """

    service_name = "Property Service"

    async def list(self, include_details: bool = True) -> List[Property]:
        return await self._get_list(
            Property, "/propiedades", "list_properties", params={"includeDetails": flag(include_details)}
        )

    async def get(self, property_id: int, include_details: bool = True) -> Property:
        return await self._get_model(
            Property,
            f"/propiedades/{property_id}",
            f"get_property({property_id})",
            params={"includeDetails": flag(include_details)},
        )

    async def exists(self, property_id: int) -> bool:
        return await self._check(f"/propiedades/{property_id}/existe", f"property_exists({property_id})")

    async def search(self, filters: Optional[PropertyFilters] = None) -> List[Property]:
        params = (filters or PropertyFilters()).to_params()
        return await self._get_list(Property, "/propiedades/buscar", "search_properties", params=params)

    async def create(self, request: CreatePropertyRequest) -> Property:
        data = await self._request("POST", "/propiedades", "create_property", json=request.to_wire())
        return self._parse(Property, data, "create_property")

    async def update(self, property_id: int, changes: dict) -> Property:
        data = await self._request("PUT", f"/propiedades/{property_id}", f"update_property({property_id})", json=changes)
        return self._parse(Property, data, f"update_property({property_id})")

    async def delete(self, property_id: int) -> None:
        await self._request("DELETE", f"/propiedades/{property_id}", f"delete_property({property_id})")

    async def photos(self, property_id: int) -> List[Photo]:
        return await self._get_list(Photo, f"/propiedades/{property_id}/fotos", f"property_photos({property_id})")

    async def list_regions(self) -> List[Region]:
        return await self._get_list(Region, "/regiones", "list_regions")

    async def list_comunas(self) -> List[Comuna]:
        return await self._get_list(Comuna, "/comunas", "list_comunas")

    async def get_comuna(self, comuna_id: int) -> Comuna:
        return await self._get_model(Comuna, f"/comunas/{comuna_id}", f"get_comuna({comuna_id})")

    async def list_types(self) -> List[Lookup]:
        return await self._get_list(Lookup, "/tipos", "list_property_types")

    async def list_categories(self) -> List[Lookup]:
        return await self._get_list(Lookup, "/categorias", "list_categories")
