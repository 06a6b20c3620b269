"""Seller wizard workflow: load a step, save its answers, reach the results.

Every function takes the acting ``Actor`` first and returns an
``ActionResult``.  Reads and writes of one call share a single
``transaction.atomic()`` block; a ``SurveyActionError`` raised inside it rolls
the block back before ``service_action`` turns it into a failed result.

When ``FeatureFlags.lock_results_nav`` is enabled, a seller who reached the
results step can neither load nor save earlier steps any more.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from django.db import transaction
from django.utils import timezone

from ..models import (
    OPTION_VALUES,
    QuestionOption,
    QuestionResponse,
    SellerProgress,
    StepQuestion,
    SurveyStep,
)
from .access import Actor, require_seller
from .features import FeatureFlags
from .results import ActionResult, ErrorCode, SurveyActionError, service_action

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepAnswer:
    question_key: str
    option_value: str


def _coerce_answer(raw: Any) -> Optional[StepAnswer]:
    if isinstance(raw, StepAnswer):
        return raw
    if isinstance(raw, Mapping):
        key = raw.get('questionKey', raw.get('question_key'))
        value = raw.get('optionValue', raw.get('option_value'))
    elif isinstance(raw, (list, tuple)) and len(raw) == 2:
        key, value = raw
    else:
        return None
    if not isinstance(key, str) or not key:
        return None
    # JSON clients may send the option as a number; booleans are never options.
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    if value not in OPTION_VALUES:
        return None
    return StepAnswer(question_key=key, option_value=value)


def parse_answers(raw_answers: Any) -> List[StepAnswer]:
    """Validate the submitted answers; later answers for a question win.

    Raises ``SurveyActionError`` with ``INVALID_INPUT`` for an empty list or
    any malformed entry.
    """

    if isinstance(raw_answers, (str, bytes)) or not isinstance(raw_answers, Iterable):
        raise SurveyActionError(ErrorCode.INVALID_INPUT, 'stepKey and non-empty answers are required')
    if isinstance(raw_answers, Mapping):
        raw_answers = list(raw_answers.items())
    parsed: Dict[str, StepAnswer] = {}
    for raw in raw_answers:
        answer = _coerce_answer(raw)
        if answer is None:
            raise SurveyActionError(
                ErrorCode.INVALID_INPUT,
                'answers must include questionKey and optionValue in {0,1,3,5}',
            )
        parsed.pop(answer.question_key, None)
        parsed[answer.question_key] = answer
    if not parsed:
        raise SurveyActionError(ErrorCode.INVALID_INPUT, 'stepKey and non-empty answers are required')
    return list(parsed.values())


def _ensure_not_completed(progress: Optional[SellerProgress], flags: FeatureFlags) -> None:
    if flags.lock_results_nav and progress is not None and progress.is_completed:
        raise SurveyActionError(ErrorCode.SURVEY_COMPLETED, 'Assessment already completed')


def _active_step(step_key: Any) -> SurveyStep:
    step = SurveyStep.objects.filter(key=step_key).first() if isinstance(step_key, str) else None
    if step is None or not step.is_active:
        raise SurveyActionError(ErrorCode.STEP_NOT_FOUND, 'Step not found or inactive')
    return step


def is_locked(seller_id: int, flags: FeatureFlags) -> bool:
    """True when the wizard is closed for ``seller_id``."""

    if not flags.lock_results_nav:
        return False
    progress = SellerProgress.objects.filter(seller_id=seller_id).first()
    return progress is not None and progress.is_completed


def _question_ids_for(step: SurveyStep, keys: Sequence[str]) -> Dict[str, int]:
    rows = StepQuestion.objects.filter(step=step, question__key__in=keys).values_list(
        'question__key', 'question_id'
    )
    return dict(rows)


def _option_lookup(question_ids: Iterable[int]) -> Dict[Tuple[int, str], int]:
    rows = QuestionOption.objects.filter(
        question_id__in=list(question_ids),
        value__in=OPTION_VALUES,
    ).values_list('question_id', 'value', 'pk')
    return {(question_id, value): pk for question_id, value, pk in rows}


@service_action
def save_step_answers(
    actor: Optional[Actor],
    step_key: str,
    answers: Any,
    flags: Optional[FeatureFlags] = None,
) -> Dict[str, Any]:
    """Store the seller's answers for one step and advance their progress.

    Each answer overwrites any earlier answer for the same question.  The
    stored ``last_step_order`` never decreases, whatever order the steps are
    saved in.
    """

    seller = require_seller(actor)
    flags = flags or FeatureFlags.from_settings()
    if not isinstance(step_key, str) or not step_key:
        raise SurveyActionError(ErrorCode.INVALID_INPUT, 'stepKey and non-empty answers are required')
    parsed = parse_answers(answers)

    with transaction.atomic():
        progress = (
            SellerProgress.objects.select_for_update()
            .filter(seller_id=seller.user_id)
            .first()
        )
        _ensure_not_completed(progress, flags)
        step = _active_step(step_key)

        question_ids = _question_ids_for(step, [answer.question_key for answer in parsed])
        for answer in parsed:
            if answer.question_key not in question_ids:
                raise SurveyActionError(
                    ErrorCode.QUESTION_NOT_IN_STEP,
                    f'Question {answer.question_key} does not belong to step {step_key}',
                )

        options = _option_lookup(question_ids.values())
        responses: List[QuestionResponse] = []
        for answer in parsed:
            question_id = question_ids[answer.question_key]
            option_id = options.get((question_id, answer.option_value))
            if option_id is None:
                raise SurveyActionError(ErrorCode.OPTION_NOT_FOUND, 'Option not found')
            responses.append(
                QuestionResponse(
                    seller_id=seller.user_id,
                    question_id=question_id,
                    option_id=option_id,
                )
            )

        QuestionResponse.objects.bulk_create(
            responses,
            update_conflicts=True,
            unique_fields=['seller', 'question'],
            update_fields=['option', 'updated_at'],
        )

        if progress is None:
            progress, _ = SellerProgress.objects.select_for_update().get_or_create(
                seller_id=seller.user_id
            )
        progress.advance_to(step)
        progress.save(update_fields=['last_step', 'last_step_order', 'updated_at'])

    logger.info(
        "Seller %s saved %d answer(s) for step %s", seller.user_id, len(responses), step.key
    )
    return {
        'step_key': step.key,
        'saved': len(responses),
        'last_step_order': progress.last_step_order,
    }


@service_action
def get_step_with_questions(
    actor: Optional[Actor],
    step_key: str,
    flags: Optional[FeatureFlags] = None,
) -> Dict[str, Any]:
    """Return a step with its ordered questions, options and the seller's picks."""

    seller = require_seller(actor)
    flags = flags or FeatureFlags.from_settings()
    if not isinstance(step_key, str) or not step_key:
        raise SurveyActionError(ErrorCode.INVALID_INPUT, 'stepKey is required')

    with transaction.atomic():
        progress = SellerProgress.objects.filter(seller_id=seller.user_id).first()
        _ensure_not_completed(progress, flags)
        step = _active_step(step_key)

        step_questions = list(
            StepQuestion.objects.filter(step=step)
            .select_related('question')
            .order_by('order', 'pk')
        )
        question_ids = [sq.question_id for sq in step_questions]
        options_by_question: Dict[int, List[Dict[str, Any]]] = {}
        value_by_option: Dict[int, str] = {}
        for option in QuestionOption.objects.filter(
            question_id__in=question_ids,
            value__in=OPTION_VALUES,
        ).order_by('question_id', 'order'):
            options_by_question.setdefault(option.question_id, []).append(
                {'value': option.value, 'label': option.label, 'order': option.order}
            )
            value_by_option[option.pk] = option.value
        selected_by_question = dict(
            QuestionResponse.objects.filter(
                seller_id=seller.user_id,
                question_id__in=question_ids,
            ).values_list('question_id', 'option_id')
        )

    questions = []
    for sq in step_questions:
        option_id = selected_by_question.get(sq.question_id)
        questions.append(
            {
                'key': sq.question.key,
                'label': sq.question.label,
                'order': sq.order,
                'options': options_by_question.get(sq.question_id, []),
                'selected': value_by_option.get(option_id) if option_id else None,
            }
        )
    return {
        'step': {'key': step.key, 'title': step.title, 'order': step.order},
        'questions': questions,
    }


@service_action
def mark_reached_results(actor: Optional[Actor], flags: Optional[FeatureFlags] = None) -> ActionResult:
    """Record that the seller arrived at the results step.

    Nothing is stored while the results lock is disabled.
    """

    seller = require_seller(actor)
    flags = flags or FeatureFlags.from_settings()
    if not flags.lock_results_nav:
        return ActionResult.success()

    with transaction.atomic():
        progress, _ = SellerProgress.objects.select_for_update().get_or_create(
            seller_id=seller.user_id
        )
        progress.mark_results_reached(timezone.now())
        progress.save(
            update_fields=['reached_results', 'reached_results_at', 'last_step_order', 'updated_at']
        )
    logger.info("Seller %s reached the results step", seller.user_id)
    return ActionResult.success()


def list_active_steps() -> List[Dict[str, Any]]:
    """Return the active steps that hold questions, in wizard order."""

    steps = (
        SurveyStep.objects.filter(is_active=True, step_questions__isnull=False)
        .distinct()
        .order_by('order')
    )
    return [{'key': step.key, 'title': step.title, 'order': step.order} for step in steps]
