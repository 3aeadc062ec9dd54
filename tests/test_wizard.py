import pytest

from conftest import REQUIRED_FILES, VALID_DRAFT, build_graph
from persistence.encrypted_saver import EncryptedMemorySaver
from registration.graph import RegistrationGraphFactory
from registration.state import RegistrationState
from registration.submitter import INVALID_DRAFT, UNEXPECTED_ERROR, RegistrationSubmitter
from registration.wizard import RegistrationWizard
from registration.validator import DOCUMENT_REQUIRED, EMAIL_INVALID, UNDERAGE
from services.errors import GENERIC_FAILURE
from services.schemas import Role


def _stored_bytes(obj):
    if isinstance(obj, (bytes, bytearray)):
        yield bytes(obj)
    elif isinstance(obj, dict):
        for key, value in obj.items():
            yield from _stored_bytes(key)
            yield from _stored_bytes(value)
    elif isinstance(obj, (list, tuple)):
        for item in obj:
            yield from _stored_bytes(item)


async def _to_documents_step(wizard, **overrides):
    await wizard.edit(**{**VALID_DRAFT, **overrides})
    state = await wizard.next()
    assert state.step == "documents"
    return state


async def _attach_all(wizard, files):
    for kind, filename in files.items():
        await wizard.attach(kind, filename)


@pytest.mark.asyncio
async def test_valid_personal_data_advances_with_no_errors(harness):
    await harness.wizard.edit(**VALID_DRAFT)
    state = await harness.wizard.next()

    assert state.step == "documents"
    assert state.validation_errors == {}
    assert state.action is None


@pytest.mark.asyncio
async def test_misspelled_tenant_kind_is_accepted(harness):
    state = await _to_documents_step(harness.wizard, rol="ARRENDATARIO")
    assert state.validation_errors == {}


@pytest.mark.asyncio
async def test_malformed_email_keeps_first_step(harness):
    await harness.wizard.edit(**{**VALID_DRAFT, "email": "juanattest.com"})
    state = await harness.wizard.next()

    assert state.step == "personal_data"
    assert state.validation_errors == {"email": EMAIL_INVALID}
    assert state.can_advance is False


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "field",
    ["pnombre", "papellido", "rut", "email", "ntelefono", "fnacimiento", "password", "rol"],
)
async def test_blank_required_field_blocks_next(harness, field):
    await harness.wizard.edit(**{**VALID_DRAFT, field: ""})
    state = await harness.wizard.next()

    assert state.step == "personal_data"
    # an empty password also stops matching its confirmation
    expected = {"password", "confirm"} if field == "password" else {field}
    assert set(state.validation_errors) == expected


@pytest.mark.asyncio
async def test_underage_applicant_is_rejected(harness):
    await harness.wizard.edit(**{**VALID_DRAFT, "fnacimiento": "2010-03-01"})
    state = await harness.wizard.next()

    assert state.step == "personal_data"
    assert state.validation_errors == {"fnacimiento": UNDERAGE}


@pytest.mark.asyncio
async def test_age_counts_calendar_years_only(harness):
    # turns 18 on the last day of the year
    state = await _to_documents_step(harness.wizard, fnacimiento="2008-12-31")
    assert state.validation_errors == {}


@pytest.mark.asyncio
async def test_edit_recomputes_errors_without_moving(harness):
    state = await harness.wizard.edit(pnombre="Juan", email="bad")

    assert state.step == "personal_data"
    assert state.validation_errors["email"] == EMAIL_INVALID
    assert "pnombre" not in state.validation_errors
    assert state.can_advance is False

    state = await harness.wizard.edit(**VALID_DRAFT)
    assert state.validation_errors == {}
    assert state.can_advance is True


@pytest.mark.asyncio
async def test_back_keeps_draft_and_attachments(harness):
    await _to_documents_step(harness.wizard)
    await harness.wizard.attach("DNI", "cedula.pdf")

    state = await harness.wizard.back()

    assert state.step == "personal_data"
    assert state.validation_errors == {}
    assert {k: v for k, v in state.draft().items() if v is not None} == VALID_DRAFT
    assert state.documents == {"DNI": "cedula.pdf"}

    state = await harness.wizard.next()
    assert state.step == "documents"
    assert state.documents == {"DNI": "cedula.pdf"}


@pytest.mark.asyncio
async def test_actions_outside_their_step_are_plain_edits(harness):
    state = await harness.wizard.submit()
    assert state.step == "personal_data"

    state = await harness.wizard.back()
    assert state.step == "personal_data"
    assert harness.services.calls == []


@pytest.mark.asyncio
async def test_submit_requires_mandatory_documents(harness):
    await _to_documents_step(harness.wizard)
    await harness.wizard.attach("PASAPORTE", "pasaporte.pdf")

    state = await harness.wizard.submit()

    assert state.step == "documents"
    assert state.validation_errors == {
        "DNI": DOCUMENT_REQUIRED,
        "LIQUIDACION_SUELDO": DOCUMENT_REQUIRED,
        "CERTIFICADO_ANTECEDENTES": DOCUMENT_REQUIRED,
    }
    assert harness.services.calls == []


@pytest.mark.asyncio
async def test_attach_and_detach(harness):
    await _to_documents_step(harness.wizard)

    state = await harness.wizard.attach("DNI", "cedula.pdf")
    assert state.documents == {"DNI": "cedula.pdf"}

    state = await harness.wizard.attach("DNI", "cedula_v2.pdf")
    assert state.documents == {"DNI": "cedula_v2.pdf"}

    state = await harness.wizard.detach("DNI")
    assert state.documents == {}


@pytest.mark.asyncio
async def test_unknown_fields_and_slots_are_refused(harness):
    with pytest.raises(ValueError):
        await harness.wizard.edit(apodo="juancho")
    with pytest.raises(ValueError):
        await harness.wizard.attach("LICENCIA", "licencia.pdf")


@pytest.mark.asyncio
async def test_successful_registration(harness):
    await _to_documents_step(harness.wizard)
    await _attach_all(
        harness.wizard,
        {"CERTIFICADO_AFP": "afp.pdf", **REQUIRED_FILES},
    )

    state = await harness.wizard.submit()

    assert state.step == "done"
    assert state.redirect_to == "/"
    assert state.attempts == 1

    result = harness.wizard.result_of(state)
    assert result.ok
    assert result.user_id == 42
    assert result.committed == ["DNI", "LIQUIDACION_SUELDO", "CERTIFICADO_ANTECEDENTES", "CERTIFICADO_AFP"]
    assert harness.successes == [result]

    [user_body] = harness.services.posted("/api/usuarios")
    assert user_body["clave"] == "password123"
    assert user_body["rolId"] == 3
    assert user_body["estadoId"] == 1
    assert user_body["duocVip"] is False
    assert "snombre" not in user_body

    documents = harness.services.posted("/api/documentos")
    assert [d["tipoDocId"] for d in documents] == [1, 3, 4, 5]
    assert all(d["usuarioId"] == 42 and d["estadoId"] == 1 for d in documents)
    assert documents[0]["nombre"] == "cedula.pdf"

    record = harness.session.read()
    assert record.is_logged_in
    assert record.user_id == 42
    assert record.email == "juan@test.com"
    assert record.role is Role.ARRIENDATARIO


@pytest.mark.asyncio
async def test_institutional_owner_registration(harness):
    await _to_documents_step(harness.wizard, email="juan@duocuc.cl", rol="PROPIETARIO")
    await _attach_all(harness.wizard, REQUIRED_FILES)

    await harness.wizard.submit()

    [user_body] = harness.services.posted("/api/usuarios")
    assert user_body["duocVip"] is True
    assert user_body["rolId"] == 2
    assert harness.session.read().role is Role.PROPIETARIO


@pytest.mark.asyncio
async def test_first_document_failure_leaves_created_account(harness):
    harness.services.failing_document_types = {1}
    await _to_documents_step(harness.wizard)
    await _attach_all(harness.wizard, REQUIRED_FILES)

    state = await harness.wizard.submit()

    assert state.step == "documents"
    assert state.submit_error == "Error al guardar documento"
    result = harness.wizard.result_of(state)
    assert result.partial
    assert result.failed_step == "document"
    assert result.failed_slot == "DNI"
    assert result.committed == []
    assert result.error_kind == "rejected"

    # no later document was attempted
    assert len(harness.services.posted("/api/documentos")) == 1

    record = harness.session.read()
    assert record.user_id == 42
    assert not record.is_logged_in
    assert harness.successes == []

    harness.services.failing_document_types = set()
    state = await harness.wizard.submit()

    assert state.step == "done"
    assert state.attempts == 2
    assert len(harness.services.posted("/api/usuarios")) == 2
    assert harness.wizard.result_of(state).user_id == 43


@pytest.mark.asyncio
async def test_later_document_failure_reports_committed_slots(harness):
    harness.services.failing_document_types = {4}
    await _to_documents_step(harness.wizard)
    await _attach_all(harness.wizard, REQUIRED_FILES)

    result = harness.wizard.result_of(await harness.wizard.submit())

    assert result.failed_slot == "CERTIFICADO_ANTECEDENTES"
    assert result.committed == ["DNI", "LIQUIDACION_SUELDO"]


@pytest.mark.asyncio
async def test_rejected_account_creation(harness):
    harness.services.user_rejection = (409, {"message": "El email ya está registrado"})
    await _to_documents_step(harness.wizard)
    await _attach_all(harness.wizard, REQUIRED_FILES)

    state = await harness.wizard.submit()

    assert state.step == "documents"
    assert state.submit_error == "El email ya está registrado"
    result = harness.wizard.result_of(state)
    assert result.failed_step == "account"
    assert result.user_id is None
    assert not result.partial
    assert harness.services.posted("/api/documentos") == []
    assert harness.session.read().user_id is None


@pytest.mark.asyncio
async def test_sensitive_fields_are_encrypted_at_rest(harness):
    await _to_documents_step(harness.wizard)

    stored = list(_stored_bytes(harness.saver.storage)) + list(_stored_bytes(harness.saver.blobs))
    stored += list(_stored_bytes(harness.saver.writes))
    assert stored
    for chunk in stored:
        assert b"password123" not in chunk
        assert b"12345678-9" not in chunk

    state = await harness.wizard.state()
    assert state.password == "password123"
    assert state.rut == "12345678-9"
    assert state.email == "juan@test.com"


@pytest.mark.asyncio
async def test_submit_revalidates_personal_data(harness):
    await _to_documents_step(harness.wizard)
    await _attach_all(harness.wizard, REQUIRED_FILES)

    state = await harness.wizard.edit(email="juanattest.com")
    assert state.validation_errors == {"email": EMAIL_INVALID}
    assert state.can_advance is False

    state = await harness.wizard.submit()

    assert state.step == "documents"
    assert state.validation_errors == {"email": EMAIL_INVALID}
    assert state.submission is None
    assert harness.services.calls == []

    await harness.wizard.edit(email="juan@test.com")
    state = await harness.wizard.submit()
    assert state.step == "done"


@pytest.mark.asyncio
async def test_blank_role_on_documents_step_never_reaches_services(harness):
    await _to_documents_step(harness.wizard)
    await _attach_all(harness.wizard, REQUIRED_FILES)
    await harness.wizard.edit(rol="")

    state = await harness.wizard.submit()

    assert state.step == "documents"
    assert "rol" in state.validation_errors
    assert harness.services.calls == []

    await harness.wizard.edit(rol="PROPIETARIO")
    state = await harness.wizard.submit()
    assert state.step == "done"
    assert harness.session.read().role is Role.PROPIETARIO


class BrokenSubmitter(RegistrationSubmitter):
    async def submit(self, state):
        raise RuntimeError("lost connection pool")


@pytest.mark.asyncio
async def test_unexpected_submit_failure_returns_to_documents(crypto, session, validator):
    submitter = BrokenSubmitter(None, None, session)
    graph = RegistrationGraphFactory(validator, submitter).compile(checkpointer=EncryptedMemorySaver(crypto=crypto))
    wizard = RegistrationWizard(graph, thread_id="broken-thread")
    await _to_documents_step(wizard)
    await _attach_all(wizard, REQUIRED_FILES)

    state = await wizard.submit()

    assert state.step == "documents"
    assert state.attempts == 1
    result = wizard.result_of(state)
    assert not result.ok
    assert result.error_kind == UNEXPECTED_ERROR
    assert state.submit_error == GENERIC_FAILURE

    state = await wizard.submit()
    assert state.step == "documents"
    assert state.attempts == 2


@pytest.mark.asyncio
async def test_interrupted_submission_can_be_resumed(harness):
    await _to_documents_step(harness.wizard)
    await _attach_all(harness.wizard, REQUIRED_FILES)
    await harness.graph.aupdate_state(harness.wizard.config, {"step": "submitting"}, as_node="refresh")
    assert (await harness.wizard.state()).step == "submitting"

    state = await harness.wizard.submit()

    assert state.step == "done"
    assert len(harness.services.posted("/api/usuarios")) == 1


@pytest.mark.asyncio
async def test_interrupted_submission_allows_back(harness):
    await _to_documents_step(harness.wizard)
    await harness.graph.aupdate_state(harness.wizard.config, {"step": "submitting"}, as_node="refresh")

    state = await harness.wizard.back()

    assert state.step == "personal_data"
    assert state.pnombre == "Juan"


@pytest.mark.asyncio
async def test_failing_success_callback_keeps_registration(crypto, fake_services, session, validator):
    def on_success(result):
        raise RuntimeError("analytics down")

    graph = build_graph(fake_services, session, validator, EncryptedMemorySaver(crypto=crypto), on_success=on_success)
    wizard = RegistrationWizard(graph, thread_id="callback-thread")
    await _to_documents_step(wizard)
    await _attach_all(wizard, REQUIRED_FILES)

    state = await wizard.submit()

    assert state.step == "done"
    assert wizard.result_of(state).ok
    assert session.is_logged_in()
    assert len(fake_services.posted("/api/usuarios")) == 1


@pytest.mark.asyncio
async def test_submitter_refuses_incomplete_draft(session):
    submitter = RegistrationSubmitter(None, None, session)

    result = await submitter.submit(RegistrationState(**{**VALID_DRAFT, "rol": None}))

    assert result.failed_step == "account"
    assert result.error_kind == INVALID_DRAFT
    assert result.user_id is None
    assert session.read().user_id is None
