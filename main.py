import asyncio
import logging
import uuid

from config.postgres import PostgresConfig
from config.settings import ServiceSettings
from persistence.crypto import CryptoUtils
from persistence.encrypted_saver import open_checkpointer
from registration.graph import RegistrationGraphFactory
from registration.submitter import RegistrationSubmitter
from registration.validator import RegistrationValidator
from registration.wizard import RegistrationWizard
from services.bundle import ServiceBundle
from session.store import SessionStore

logger = logging.getLogger("rentify")


async def run() -> None:
    settings = ServiceSettings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    crypto = CryptoUtils.from_b64(settings.encryption_key)
    session = SessionStore.from_path(settings.session_file)

    async with ServiceBundle(settings) as services, open_checkpointer(crypto, PostgresConfig.from_env()) as saver:
        submitter = RegistrationSubmitter(
            services.users,
            services.documents,
            session,
            institutional_domains=settings.institutional_domains,
            on_success=lambda result: logger.info("Registered user %s", result.user_id),
        )
        factory = RegistrationGraphFactory(RegistrationValidator(), submitter, settings.landing_path)
        graph = factory.compile(checkpointer=saver)

        wizard = RegistrationWizard(graph, thread_id=f"reg_{uuid.uuid4().hex[:12]}")

        state = await wizard.edit(pnombre="Juan", papellido="Pérez", email="juanattest.com")
        print("errors after first edit:", state.validation_errors)

        await wizard.edit(
            rut="12345678-9",
            email="juan@test.com",
            ntelefono="+56912345678",
            fnacimiento="1995-05-15",
            password="password123",
            confirm="password123",
            rol="ARRIENDATARIO",
        )
        state = await wizard.next()
        print("step:", state.step, "errors:", state.validation_errors)

        for kind, filename in (
            ("DNI", "cedula.pdf"),
            ("LIQUIDACION_SUELDO", "liquidacion_octubre.pdf"),
            ("CERTIFICADO_ANTECEDENTES", "antecedentes.pdf"),
        ):
            await wizard.attach(kind, filename)

        state = await wizard.submit()
        print("step:", state.step)
        result = wizard.result_of(state)
        if result is not None:
            print("submission:", result.model_dump())
        print("session:", session.read().model_dump())

        hist = [s async for s in graph.aget_state_history(wizard.config)]
        print(f"\nCheckpoint count for thread_id={wizard.thread_id}: {len(hist)}")


def main():
    asyncio.run(run())


if __name__ == "__main__":
    main()
