from typing import Optional

import httpx

from config.settings import ServiceSettings
from .applications import ApplicationClient, RentalRecordClient
from .contact import ContactClient
from .documents import DocumentClient
from .properties import PropertyClient
from .users import UserClient


class ServiceBundle:
    """All five microservice clients built from one settings object."""

    def __init__(self, settings: ServiceSettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        timeout = settings.request_timeout
        self.users = UserClient(settings.user_url, timeout, transport)
        self.properties = PropertyClient(settings.property_url, timeout, transport)
        self.documents = DocumentClient(settings.document_url, timeout, transport)
        self.applications = ApplicationClient(settings.application_url, timeout, transport)
        self.rental_records = RentalRecordClient(settings.application_url, timeout, transport)
        self.contact = ContactClient(settings.contact_url, timeout, transport)

    async def aclose(self) -> None:
        for client in (
            self.users,
            self.properties,
            self.documents,
            self.applications,
            self.rental_records,
            self.contact,
        ):
            await client.aclose()

    async def __aenter__(self) -> "ServiceBundle":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
