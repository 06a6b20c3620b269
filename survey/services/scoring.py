"""Score aggregation for the Unlock Index.

Each active step that holds at least one question is a *dimension*.  A
dimension's average only considers the questions the seller answered, so an
unanswered question lowers neither the numerator nor the denominator.  The
general index is the plain mean of the dimension averages, every step
weighing the same regardless of its size.

Rounding follows JavaScript's ``Number.prototype.toFixed`` on the binary
value of the float (half-up on the exact value), two decimals for a
dimension and one decimal for the general index.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..models import QuestionOption, QuestionResponse, StepQuestion, SurveyStep
from .access import Actor, require_seller
from .results import service_action

DEFAULT_MAX_SCORE = 5
EMPTY_ANSWER = '—'


def round_half_up(value: float, places: int) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


@dataclass
class Dimension:
    key: str
    title: str
    order: int
    average_score: float
    max_score: int
    question_count: int
    answered_count: int

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SectionItem:
    question: str
    answer: str
    score: int


@dataclass
class Section:
    key: str
    title: str
    order: int
    items: List[SectionItem]
    subtotal: int
    max_subtotal: int


class _SurveySnapshot:
    """Steps, their questions, option scores and one seller's picks, loaded once."""

    def __init__(self, seller_id: int) -> None:
        self.steps: List[SurveyStep] = list(
            SurveyStep.objects.filter(is_active=True).order_by('order', 'pk')
        )
        self.step_questions: Dict[int, List[StepQuestion]] = {}
        for sq in (
            StepQuestion.objects.filter(step__in=self.steps)
            .select_related('question')
            .order_by('order', 'pk')
        ):
            self.step_questions.setdefault(sq.step_id, []).append(sq)
        question_ids = {sq.question_id for rows in self.step_questions.values() for sq in rows}
        self.max_by_question: Dict[int, int] = {}
        self.options: Dict[int, QuestionOption] = {}
        for option in QuestionOption.objects.filter(question_id__in=question_ids):
            self.options[option.pk] = option
            current = self.max_by_question.get(option.question_id, 0)
            self.max_by_question[option.question_id] = max(current, option.score)
        self.selected: Dict[int, QuestionOption] = {}
        for question_id, option_id in QuestionResponse.objects.filter(
            seller_id=seller_id,
            question_id__in=question_ids,
        ).values_list('question_id', 'option_id'):
            option = self.options.get(option_id)
            if option is not None:
                self.selected[question_id] = option

    def scored_steps(self) -> List[SurveyStep]:
        return [step for step in self.steps if self.step_questions.get(step.pk)]


def _dimension_for(snapshot: _SurveySnapshot, step: SurveyStep) -> Dimension:
    rows = snapshot.step_questions.get(step.pk, [])
    question_ids = {sq.question_id for sq in rows}
    scores = [snapshot.selected[qid].score for qid in question_ids if qid in snapshot.selected]
    average = sum(scores) / len(scores) if scores else 0.0
    max_score = max((snapshot.max_by_question.get(qid, 0) for qid in question_ids), default=0)
    return Dimension(
        key=step.key,
        title=step.title,
        order=step.order,
        average_score=round_half_up(average, 2),
        max_score=max_score or DEFAULT_MAX_SCORE,
        question_count=len(question_ids),
        answered_count=len(scores),
    )


def compute_dimensions(seller_id: int) -> List[Dimension]:
    """Per-step averages for ``seller_id`` in step order."""

    snapshot = _SurveySnapshot(seller_id)
    return [_dimension_for(snapshot, step) for step in snapshot.scored_steps()]


def general_index(dimensions: Sequence[Dimension]) -> Optional[float]:
    """Unweighted mean of the dimension averages, or ``None`` without dimensions."""

    if not dimensions:
        return None
    total = sum(dimension.average_score for dimension in dimensions)
    return round_half_up(total / len(dimensions), 1)


def _sections_for(snapshot: _SurveySnapshot) -> List[Section]:
    sections: List[Section] = []
    for step in snapshot.scored_steps():
        items: List[SectionItem] = []
        subtotal = 0
        max_subtotal = 0
        for sq in snapshot.step_questions[step.pk]:
            selected = snapshot.selected.get(sq.question_id)
            score = selected.score if selected else 0
            subtotal += score
            max_subtotal += snapshot.max_by_question.get(sq.question_id, 0)
            items.append(
                SectionItem(
                    question=sq.question.label,
                    answer=selected.label if selected else EMPTY_ANSWER,
                    score=score,
                )
            )
        sections.append(
            Section(
                key=step.key,
                title=step.title,
                order=step.order,
                items=items,
                subtotal=subtotal,
                max_subtotal=max_subtotal,
            )
        )
    return sections


def build_report(seller_id: int) -> Tuple[List[Dimension], List[Section]]:
    """Dimensions and sections for ``seller_id`` from a single load."""

    snapshot = _SurveySnapshot(seller_id)
    dimensions = [_dimension_for(snapshot, step) for step in snapshot.scored_steps()]
    return dimensions, _sections_for(snapshot)


def index_progress(seller_id: int) -> Dict[str, int]:
    """Answered and total question counts across the scored steps."""

    snapshot = _SurveySnapshot(seller_id)
    question_ids = {
        sq.question_id
        for step in snapshot.scored_steps()
        for sq in snapshot.step_questions[step.pk]
    }
    answered = sum(1 for qid in question_ids if qid in snapshot.selected)
    return {'answered': answered, 'total': len(question_ids)}


@service_action
def get_results_by_dimension(actor: Optional[Actor]) -> Dict[str, Any]:
    seller = require_seller(actor)
    dimensions = compute_dimensions(seller.user_id)
    return {
        'dimensions': [dimension.as_dict() for dimension in dimensions],
        'general_index': general_index(dimensions),
    }
