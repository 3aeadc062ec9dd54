from typing import List
from urllib.parse import quote

from .client import ServiceClient, flag
from .schemas import ContactMessage, ContactReply, ContactStatistics, ContactStatus


class ContactClient(ServiceClient):
    service_name = "Contact Service"

    async def create(self, message: ContactMessage) -> ContactMessage:
        data = await self._request("POST", "/contacto", "create_contact_message", json=message.to_wire())
        return self._parse(ContactMessage, data, "create_contact_message")

    async def list(self, include_details: bool = False) -> List[ContactMessage]:
        return await self._get_list(
            ContactMessage, "/contacto", "list_contact_messages", params={"includeDetails": flag(include_details)}
        )

    async def get(self, message_id: int, include_details: bool = True) -> ContactMessage:
        return await self._get_model(
            ContactMessage,
            f"/contacto/{message_id}",
            f"get_contact_message({message_id})",
            params={"includeDetails": flag(include_details)},
        )

    async def list_by_email(self, email: str) -> List[ContactMessage]:
        return await self._get_list(
            ContactMessage, f"/contacto/email/{quote(email, safe='')}", "list_contact_messages_by_email"
        )

    async def list_by_user(self, user_id: int) -> List[ContactMessage]:
        return await self._get_list(
            ContactMessage, f"/contacto/usuario/{user_id}", f"list_contact_messages_by_user({user_id})"
        )

    async def list_by_status(self, status: ContactStatus) -> List[ContactMessage]:
        return await self._get_list(
            ContactMessage, f"/contacto/estado/{status.value}", f"list_contact_messages_by_status({status.value})"
        )

    async def list_unanswered(self) -> List[ContactMessage]:
        return await self._get_list(ContactMessage, "/contacto/sin-responder", "list_unanswered_contact_messages")

    async def search(self, keyword: str) -> List[ContactMessage]:
        return await self._get_list(
            ContactMessage, "/contacto/buscar", "search_contact_messages", params={"keyword": keyword}
        )

    async def update_status(self, message_id: int, status: ContactStatus) -> ContactMessage:
        data = await self._request(
            "PATCH",
            f"/contacto/{message_id}/estado",
            f"update_contact_status({message_id})",
            params={"estado": status.value},
        )
        return self._parse(ContactMessage, data, f"update_contact_status({message_id})")

    async def respond(self, message_id: int, reply: ContactReply) -> ContactMessage:
        data = await self._request(
            "POST", f"/contacto/{message_id}/responder", f"respond_contact_message({message_id})", json=reply.to_wire()
        )
        return self._parse(ContactMessage, data, f"respond_contact_message({message_id})")

    async def delete(self, message_id: int, admin_id: int) -> None:
        await self._request(
            "DELETE", f"/contacto/{message_id}", f"delete_contact_message({message_id})", params={"adminId": admin_id}
        )

    async def statistics(self) -> ContactStatistics:
        return await self._get_model(ContactStatistics, "/contacto/estadisticas", "contact_statistics")
