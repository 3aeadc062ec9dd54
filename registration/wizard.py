import logging
from typing import Any, Iterable, Optional

from registration.documents import slot_for
from registration.state import DRAFT_FIELDS, RegistrationState
from registration.submitter import SubmissionResult
from persistence.encrypted_saver import DEFAULT_ENCRYPT_KEYS

logger = logging.getLogger(__name__)


class RegistrationWizard:
    """
    One applicant's pass through the registration graph.

    Every call is a patch on the checkpointed state for `thread_id`, so the
    draft survives between calls and across back/next transitions.
    """

    def __init__(self, graph: Any, thread_id: str, encrypt_keys: Iterable[str] = DEFAULT_ENCRYPT_KEYS):
        self.graph = graph
        self.thread_id = thread_id
        self.config = {
            "configurable": {
                "thread_id": thread_id,
                "encrypt_keys": list(encrypt_keys),
            }
        }

    @staticmethod
    def _coerce(values: Any) -> RegistrationState:
        if isinstance(values, RegistrationState):
            return values
        return RegistrationState.model_validate(values or {})

    async def _invoke(self, patch: dict) -> RegistrationState:
        return self._coerce(await self.graph.ainvoke(patch, self.config))

    async def state(self) -> RegistrationState:
        snapshot = await self.graph.aget_state(self.config)
        return self._coerce(snapshot.values)

    async def edit(self, **fields: Optional[str]) -> RegistrationState:
        unknown = set(fields) - set(DRAFT_FIELDS)
        if unknown:
            raise ValueError(f"Not draft fields: {sorted(unknown)}")
        return await self._invoke(fields)

    async def attach(self, kind: str, filename: str) -> RegistrationState:
        """Attaches or replaces the file in a slot."""
        slot_for(kind)
        if not filename:
            raise ValueError("filename must not be empty")
        documents = dict((await self.state()).documents)
        documents[kind] = filename
        return await self._invoke({"documents": documents})

    async def detach(self, kind: str) -> RegistrationState:
        slot_for(kind)
        documents = dict((await self.state()).documents)
        documents.pop(kind, None)
        return await self._invoke({"documents": documents})

    async def next(self) -> RegistrationState:
        return await self._invoke({"action": "next"})

    async def back(self) -> RegistrationState:
        return await self._invoke({"action": "back"})

    async def submit(self) -> RegistrationState:
        state = await self._invoke({"action": "submit"})
        result = self.result_of(state)
        if result is not None and not result.ok:
            logger.info("Registration %s stopped at %s: %s", self.thread_id, result.failed_step, result.error_message)
        return state

    @staticmethod
    def result_of(state: RegistrationState) -> Optional[SubmissionResult]:
        if state.submission is None:
            return None
        return SubmissionResult.model_validate(state.submission)
