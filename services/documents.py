from typing import List

from .client import ServiceClient, flag
from .schemas import CreateDocumentRequest, Document, DocumentStatus, Lookup


class DocumentClient(ServiceClient):
    service_name = "Document Service"

    async def create(self, request: CreateDocumentRequest) -> Document:
        data = await self._request("POST", "/documentos", "create_document", json=request.to_wire())
        return self._parse(Document, data, "create_document")

    async def list(self, include_details: bool = False) -> List[Document]:
        return await self._get_list(
            Document, "/documentos", "list_documents", params={"includeDetails": flag(include_details)}
        )

    async def get(self, document_id: int, include_details: bool = True) -> Document:
        return await self._get_model(
            Document,
            f"/documentos/{document_id}",
            f"get_document({document_id})",
            params={"includeDetails": flag(include_details)},
        )

    async def list_by_user(self, user_id: int, include_details: bool = True) -> List[Document]:
        return await self._get_list(
            Document,
            f"/documentos/usuario/{user_id}",
            f"list_documents_by_user({user_id})",
            params={"includeDetails": flag(include_details)},
        )

    async def has_approved(self, user_id: int) -> bool:
        """
        Whether the user has at least one approved document. The application
        service relies on the same check before accepting a rental request.
        """
        return await self._check(
            f"/documentos/usuario/{user_id}/verificar-aprobados", f"has_approved_documents({user_id})"
        )

    async def update_status(self, document_id: int, status: DocumentStatus) -> Document:
        data = await self._request(
            "PATCH",
            f"/documentos/{document_id}/estado/{status.id}",
            f"update_document_status({document_id})",
        )
        return self._parse(Document, data, f"update_document_status({document_id})")

    async def delete(self, document_id: int) -> None:
        await self._request("DELETE", f"/documentos/{document_id}", f"delete_document({document_id})")

    async def list_statuses(self) -> List[Lookup]:
        return await self._get_list(Lookup, "/estados", "list_document_statuses")

    async def list_types(self) -> List[Lookup]:
        return await self._get_list(Lookup, "/tipos-documentos", "list_document_types")
