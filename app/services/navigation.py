"""Navigation controller for a single form fill session.

The controller owns the state of one respondent filling in one form: the
current page, the answers given so far, the live visibility/required sets
and the field errors of the last rejected transition. It validates pages
before moving forward, follows skip rules, and produces the final
FormResponse on submission.

Every transition returns an Outcome describing what happened; callers
decide how to present it. Nothing here raises for expected failures.
"""

import copy
import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from app.schemas.form import CHOICE_TYPES, Form, FormResponse, Question
from app.services.answers import InvalidAnswerError, is_blank, normalize_answer
from app.services.collaborators import (
    FormRepository,
    IdentityProvider,
    ResponseSink,
    ResponseSinkError,
    SinkResult,
)
from app.services.conditions import ConditionEvaluator, Evaluation
from app.services.form_loader import FormDefinitionError, FormNotFoundError
from app.services.pagination import split_pages
from app.services.scoring import score_form
from app.services.template_renderer import get_template_renderer
from app.services.validation import ResponseValidator
from app.logging_config import get_logger

logger = get_logger(__name__)


class FillStatus(str, Enum):
    """Lifecycle state of a fill session."""
    VIEWING = "viewing"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    EXPIRED = "expired"


class OutcomeKind(str, Enum):
    """Result category of a transition."""
    OK = "ok"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    VALIDATION_FAILURE = "validation_failure"
    AUTH_REQUIRED = "auth_required"
    PERSISTENCE_FAILURE = "persistence_failure"
    ALREADY_RESPONDED = "already_responded"
    BUSY = "busy"
    INVALID_ANSWER = "invalid_answer"
    INVALID_STATE = "invalid_state"


@dataclass(frozen=True)
class Outcome:
    """Structured result of a controller operation.

    Attributes:
        kind: What happened
        message: Human-readable notice for the respondent
        failed_ids: Questions to highlight (validation failures)
        response: The stored response (successful submission only)
    """
    kind: OutcomeKind
    message: Optional[str] = None
    failed_ids: frozenset[str] = field(default_factory=frozenset)
    response: Optional[FormResponse] = None

    @property
    def ok(self) -> bool:
        return self.kind == OutcomeKind.OK


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NavigationController:
    """State machine driving one fill session.

    States are `viewing` (on some page), `submitting` (waiting on the
    response sink), `submitted` and `expired`; the last two are terminal.
    """

    def __init__(
        self,
        form: Form,
        sink: ResponseSink,
        identity: Optional[IdentityProvider] = None,
        *,
        page_index: int = 0,
        answers: Optional[Mapping[str, Any]] = None,
        status: FillStatus = FillStatus.VIEWING,
        shuffle_seed: Optional[int] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """Initialize a controller, optionally resuming saved state.

        Args:
            form: Form being filled in
            sink: Where the final response is handed
            identity: Source of the respondent identity, if any
            page_index: Page to resume on
            answers: Previously stored answers to resume with
            status: Status to resume in
            shuffle_seed: Seed for display shuffling; random if omitted
            clock: Time source for deadlines and timestamps
        """
        self.form = form
        self.pages = split_pages(form.questions)
        self._sink = sink
        self._identity = identity
        self._clock = clock
        self._answers: dict[str, Any] = dict(answers or {})
        self._page_index = min(max(page_index, 0), len(self.pages) - 1)
        # Resumed sessions never start mid-submission
        self._status = FillStatus.VIEWING if status == FillStatus.SUBMITTING else status
        self._errors: frozenset[str] = frozenset()
        self.shuffle_seed = shuffle_seed if shuffle_seed is not None else random.randrange(2**31)
        self.response: Optional[FormResponse] = None
        self.confirmation_message: Optional[str] = None
        self._evaluation = ConditionEvaluator.evaluate(form, self._answers)

    @classmethod
    def open(
        cls,
        loader: FormRepository,
        form_id: str,
        sink: ResponseSink,
        identity: Optional[IdentityProvider] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> tuple[Outcome, Optional["NavigationController"]]:
        """Load a form and start a new fill session on its first page.

        Args:
            loader: Form repository
            form_id: Form to fill in
            sink: Response sink for the eventual submission
            identity: Respondent identity provider
            clock: Time source

        Returns:
            Tuple of (outcome, controller). The controller is None when the
            form cannot be loaded, and is in the terminal `expired` state
            when the form's deadline has passed.
        """
        try:
            form = loader.load_form(form_id)
        except FormNotFoundError:
            logger.info(f"Form not found: {form_id}", extra={"form_id": form_id})
            return Outcome(OutcomeKind.NOT_FOUND, "This form doesn't exist or has been removed."), None
        except FormDefinitionError as e:
            logger.error(f"Form {form_id} could not be loaded: {e}", extra={"form_id": form_id})
            return Outcome(OutcomeKind.NOT_FOUND, "This form could not be loaded."), None

        controller = cls(form, sink, identity, clock=clock)
        if controller.is_past_deadline():
            controller._status = FillStatus.EXPIRED
            logger.info(f"Form {form_id} is past its deadline", extra={"form_id": form_id})
            return Outcome(OutcomeKind.EXPIRED, "This form is no longer accepting responses."), controller

        return Outcome(OutcomeKind.OK), controller

    # State accessors

    @property
    def status(self) -> FillStatus:
        return self._status

    @property
    def current_page_index(self) -> int:
        return self._page_index

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def is_first_page(self) -> bool:
        return self._page_index == 0

    @property
    def is_last_page(self) -> bool:
        return self._page_index == len(self.pages) - 1

    @property
    def answers(self) -> dict[str, Any]:
        """Copy of the current answer state."""
        return copy.deepcopy(self._answers)

    @property
    def evaluation(self) -> Evaluation:
        return self._evaluation

    @property
    def visible(self) -> frozenset[str]:
        return self._evaluation.visible

    @property
    def required(self) -> frozenset[str]:
        return self._evaluation.required

    @property
    def errors(self) -> frozenset[str]:
        return self._errors

    @property
    def progress_percent(self) -> Optional[float]:
        """Progress through the form, when the form shows a progress bar."""
        if not self.form.settings.show_progress_bar or len(self.pages) < 2:
            return None
        return (self._page_index + 1) / len(self.pages) * 100

    def is_past_deadline(self) -> bool:
        deadline = self.form.settings.deadline
        return deadline is not None and deadline < self._clock()

    def current_questions(self) -> list[Question]:
        """Visible questions of the current page in display order.

        With shuffleQuestions the non-section questions are reordered; a
        page's section header always stays first.
        """
        page = [q for q in self.pages[self._page_index] if q.id in self.visible]
        if not self.form.settings.shuffle_questions:
            return page

        header = [q for q in page if q.is_section]
        body = [q for q in page if not q.is_section]
        random.Random(f"{self.shuffle_seed}:page:{self._page_index}").shuffle(body)
        return header + body

    def options_for(self, question: Question) -> list[str]:
        """Options of a choice question in display order."""
        options = list(question.options)
        if self.form.settings.shuffle_options and question.type in CHOICE_TYPES:
            random.Random(f"{self.shuffle_seed}:options:{question.id}").shuffle(options)
        return options

    # Transitions

    def set_answer(self, question_id: str, value: Any) -> Outcome:
        """Record (or clear, with None) the answer to a question.

        Re-evaluates conditional logic and clears the question's error
        once it holds a non-empty answer.

        Args:
            question_id: Question being answered
            value: Raw answer value, or None to clear it

        Returns:
            Outcome of the update
        """
        if self._status != FillStatus.VIEWING:
            return self._not_viewing()

        question = self.form.get_question(question_id)
        if question is None:
            return Outcome(OutcomeKind.INVALID_ANSWER, f"Unknown question: {question_id}")

        if value is None:
            self._answers.pop(question_id, None)
        else:
            try:
                self._answers[question_id] = normalize_answer(question, value)
            except InvalidAnswerError as e:
                logger.info(f"Rejected answer for {question_id}: {e}", extra={"form_id": self.form.id})
                return Outcome(OutcomeKind.INVALID_ANSWER, str(e), failed_ids=frozenset({question_id}))

        self._evaluation = ConditionEvaluator.evaluate(self.form, self._answers)

        if question_id in self._errors and not is_blank(self._answers.get(question_id)):
            self._errors = self._errors - {question_id}

        return Outcome(OutcomeKind.OK)

    def advance(self) -> Outcome:
        """Move past the current page.

        The current page must validate. A matching forward skip rule
        decides the target page; otherwise the next page is shown. On the
        last page this is a no-op, since submission is a separate action.

        Returns:
            Outcome of the transition
        """
        if self._status != FillStatus.VIEWING:
            return self._not_viewing()

        result = ResponseValidator.validate(
            self.pages[self._page_index], self.visible, self.required, self._answers
        )
        if not result.is_valid:
            self._errors = result.failed_ids
            return Outcome(
                OutcomeKind.VALIDATION_FAILURE,
                result.error_message,
                failed_ids=result.failed_ids,
            )

        self._errors = frozenset()

        target = ConditionEvaluator.find_skip_target(
            self.form, self.pages, self._answers, self._page_index
        )
        if target is not None:
            self._page_index = target
        elif not self.is_last_page:
            self._page_index += 1

        logger.debug(f"Now on page {self._page_index}", extra={"form_id": self.form.id})
        return Outcome(OutcomeKind.OK)

    def retreat(self) -> Outcome:
        """Go back one page without validating. Answers are kept."""
        if self._status != FillStatus.VIEWING:
            return self._not_viewing()

        if self._page_index > 0:
            self._page_index -= 1
            self._errors = frozenset()
        return Outcome(OutcomeKind.OK)

    async def submit(self) -> Outcome:
        """Validate the whole form and hand the response to the sink.

        Only available on the last page. While a submission is in flight
        further calls are ignored and report `busy`. A sink failure leaves
        the session on the last page so the respondent can retry.

        Returns:
            Outcome of the submission; on success it carries the response
        """
        if self._status == FillStatus.SUBMITTING:
            logger.info("Ignoring submit while a submission is in flight", extra={"form_id": self.form.id})
            return Outcome(OutcomeKind.BUSY, "Your response is already being submitted.")
        if self._status != FillStatus.VIEWING:
            return self._not_viewing()
        if not self.is_last_page:
            return Outcome(OutcomeKind.INVALID_STATE, "Forms can only be submitted from the last page.")

        result = ResponseValidator.validate(
            self.form.questions, self.visible, self.required, self._answers
        )
        if not result.is_valid:
            self._errors = result.failed_ids
            return Outcome(
                OutcomeKind.VALIDATION_FAILURE,
                result.error_message,
                failed_ids=result.failed_ids,
            )
        self._errors = frozenset()

        respondent = self._identity.current_respondent() if self._identity else None
        settings = self.form.settings

        if settings.collect_email and respondent is None:
            return Outcome(OutcomeKind.AUTH_REQUIRED, "Please sign in to submit this form.")

        if settings.limit_one_response and respondent is not None:
            if self._sink.has_response(self.form.id, respondent.email):
                logger.info("Respondent already answered this form", extra={"form_id": self.form.id})
                return Outcome(OutcomeKind.ALREADY_RESPONDED, "You have already responded to this form.")

        score = score_form(self.form, self._answers)
        response = FormResponse(
            id=str(uuid.uuid4()),
            form_id=self.form.id,
            responses=copy.deepcopy(self._answers),
            created_at=self._clock(),
            respondent_email=respondent.email if respondent else None,
            score=score.score if score else None,
            max_score=score.max_score if score else None,
        )

        self._status = FillStatus.SUBMITTING
        try:
            sink_result = await self._sink.submit_response(response)
        except ResponseSinkError as e:
            sink_result = SinkResult.failed(str(e))
        finally:
            self._status = FillStatus.VIEWING

        if not sink_result.success:
            logger.error(
                f"Response sink rejected submission: {sink_result.reason}",
                extra={"form_id": self.form.id, "response_id": response.id},
            )
            return Outcome(OutcomeKind.PERSISTENCE_FAILURE, "Error submitting form. Please try again later.")

        self._status = FillStatus.SUBMITTED
        self.response = response
        self.confirmation_message = get_template_renderer().render_confirmation(self.form, score)
        logger.info(
            "Form response submitted",
            extra={"form_id": self.form.id, "response_id": response.id},
        )
        return Outcome(OutcomeKind.OK, self.confirmation_message, response=response)

    def _not_viewing(self) -> Outcome:
        if self._status == FillStatus.EXPIRED:
            return Outcome(OutcomeKind.EXPIRED, "This form is no longer accepting responses.")
        if self._status == FillStatus.SUBMITTING:
            return Outcome(OutcomeKind.BUSY, "Your response is being submitted.")
        return Outcome(OutcomeKind.INVALID_STATE, "This response has already been submitted.")
