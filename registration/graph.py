import logging
from typing import Any

from langgraph.graph import StateGraph, START, END

from registration.state import RegistrationState
from registration.submitter import UNEXPECTED_ERROR, RegistrationSubmitter, SubmissionResult
from registration.validator import RegistrationValidator
from services.errors import GENERIC_FAILURE

logger = logging.getLogger(__name__)


class RegistrationGraphFactory:
    def __init__(
        self,
        validator: RegistrationValidator,
        submitter: RegistrationSubmitter,
        landing_path: str = "/",
    ):
        self.validator = validator
        self.submitter = submitter
        self.landing_path = landing_path

    @staticmethod
    def route(state: RegistrationState) -> str:
        """
        Actions only apply in their own step; anything else is a plain edit.
        """
        if state.action == "next" and state.step == "personal_data":
            return "check_personal_data"
        # "submitting" is left behind only by an interrupted run
        if state.action == "back" and state.step in ("documents", "submitting"):
            return "back"
        if state.action == "submit" and state.step in ("documents", "submitting"):
            return "check_documents"
        return "refresh"

    def advance(self, state: RegistrationState) -> dict:
        logger.info("Registration: personal data accepted")
        return {
            "step": "documents",
            "validation_errors": {},
            "can_advance": not self.validator.submission_errors(state),
        }

    def back(self, state: RegistrationState) -> dict:
        return {
            "step": "personal_data",
            "action": None,
            "validation_errors": {},
            "can_advance": not self.validator.personal_data_errors(state),
        }

    @staticmethod
    def begin_submit(state: RegistrationState) -> dict:
        return {
            "step": "submitting",
            "attempts": state.attempts + 1,
            "submission": None,
            "redirect_to": None,
        }

    async def submit(self, state: RegistrationState) -> dict:
        logger.info("Registration: submitting attempt %d", state.attempts)
        try:
            result = await self.submitter.submit(state)
        except Exception:
            logger.exception("Registration: submission attempt %d aborted", state.attempts)
            result = SubmissionResult(error_kind=UNEXPECTED_ERROR, error_message=GENERIC_FAILURE)

        if result.ok:
            return {
                "step": "done",
                "submission": result.model_dump(),
                "can_advance": False,
                "redirect_to": self.landing_path,
            }

        # back to the step the user submitted from
        return {
            "step": "documents",
            "submission": result.model_dump(),
            "can_advance": True,
        }

    def build(self) -> StateGraph:
        g = StateGraph(RegistrationState)

        g.add_node("refresh", self.validator.refresh)
        g.add_node("check_personal_data", self.validator.check_personal_data)
        g.add_node("advance", self.advance)
        g.add_node("back", self.back)
        g.add_node("check_documents", self.validator.check_documents)
        g.add_node("begin_submit", self.begin_submit)
        g.add_node("submit", self.submit)

        g.add_conditional_edges(
            START,
            self.route,
            {
                "refresh": "refresh",
                "check_personal_data": "check_personal_data",
                "back": "back",
                "check_documents": "check_documents",
            },
        )
        g.add_edge("refresh", END)
        g.add_edge("back", END)

        g.add_conditional_edges(
            "check_personal_data",
            self.validator.should_proceed,
            {"end": END, "proceed": "advance"},
        )
        g.add_edge("advance", END)

        g.add_conditional_edges(
            "check_documents",
            self.validator.should_proceed,
            {"end": END, "proceed": "begin_submit"},
        )
        g.add_edge("begin_submit", "submit")
        g.add_edge("submit", END)

        return g

    def compile(self, checkpointer: Any):
        return self.build().compile(checkpointer=checkpointer)
