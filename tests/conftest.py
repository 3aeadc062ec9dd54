import json
from datetime import date
from types import SimpleNamespace

import httpx
import pytest

from persistence.crypto import CryptoUtils
from persistence.encrypted_saver import EncryptedMemorySaver
from registration.graph import RegistrationGraphFactory
from registration.submitter import RegistrationSubmitter
from registration.validator import RegistrationValidator
from registration.wizard import RegistrationWizard
from services.documents import DocumentClient
from services.users import UserClient
from session.store import SessionStore

TODAY = date(2026, 10, 19)

USERS_URL = "http://users.test/api"
DOCUMENTS_URL = "http://documents.test/api"

VALID_DRAFT = {
    "pnombre": "Juan",
    "papellido": "Pérez",
    "rut": "12345678-9",
    "email": "juan@test.com",
    "ntelefono": "+56912345678",
    "fnacimiento": "1995-05-15",
    "password": "password123",
    "confirm": "password123",
    "rol": "ARRIENDATARIO",
}

REQUIRED_FILES = {
    "DNI": "cedula.pdf",
    "LIQUIDACION_SUELDO": "liquidacion.pdf",
    "CERTIFICADO_ANTECEDENTES": "antecedentes.pdf",
}


class FakeRentify:
    """In-memory user and document services behind an httpx.MockTransport."""

    def __init__(self):
        self.calls = []
        self.user_rejection = None
        self.failing_document_types = set()
        self.next_user_id = 42
        self.next_document_id = 100

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        path = request.url.path
        self.calls.append((request.method, path, body))

        if request.method == "POST" and path == "/api/usuarios":
            if self.user_rejection is not None:
                status, payload = self.user_rejection
                return httpx.Response(status, json=payload)
            user = {
                "id": self.next_user_id,
                "pnombre": body["pnombre"],
                "papellido": body["papellido"],
                "email": body["email"],
                "rolId": body["rolId"],
                "estadoId": body["estadoId"],
            }
            self.next_user_id += 1
            return httpx.Response(201, json=user)

        if request.method == "POST" and path == "/api/documentos":
            if body["tipoDocId"] in self.failing_document_types:
                return httpx.Response(500, json={"message": "Error al guardar documento"})
            document = {"id": self.next_document_id, **body}
            self.next_document_id += 1
            return httpx.Response(201, json=document)

        return httpx.Response(404, json={"message": "Recurso no encontrado"})

    def posted(self, path: str):
        return [body for method, p, body in self.calls if method == "POST" and p == path]


@pytest.fixture
def crypto():
    return CryptoUtils.from_b64(CryptoUtils.generate_key_b64())


@pytest.fixture
def fake_services():
    return FakeRentify()


@pytest.fixture
def session():
    return SessionStore()


@pytest.fixture
def validator():
    return RegistrationValidator(clock=lambda: TODAY)


def build_graph(fake_services, session, validator, checkpointer, on_success=None):
    transport = httpx.MockTransport(fake_services)
    submitter = RegistrationSubmitter(
        UserClient(USERS_URL, transport=transport),
        DocumentClient(DOCUMENTS_URL, transport=transport),
        session,
        on_success=on_success,
    )
    return RegistrationGraphFactory(validator, submitter, landing_path="/").compile(checkpointer=checkpointer)


@pytest.fixture
def harness(crypto, fake_services, session, validator):
    saver = EncryptedMemorySaver(crypto=crypto)
    successes = []
    graph = build_graph(fake_services, session, validator, saver, on_success=successes.append)
    return SimpleNamespace(
        wizard=RegistrationWizard(graph, thread_id="test-thread"),
        graph=graph,
        saver=saver,
        services=fake_services,
        session=session,
        successes=successes,
    )
