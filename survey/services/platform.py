"""Platform-side services: seller listing, seller detail and toggles.

Only actors with the ``platform`` role may call these functions.  The
listing is paginated with an opaque keyset cursor over the seller's last
activity (``last_login``, or ``date_joined`` for sellers who never signed
in) so that new sign-ins do not shift rows between pages.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from typing import Any, Dict, List, Mapping, Optional

from django.contrib.auth.models import User
from django.core.exceptions import ObjectDoesNotExist
from django.db import transaction
from django.db.models import Count, Q
from django.db.models.functions import Coalesce
from django.utils import timezone

from ..models import Profile, QuestionResponse, SellerAssessment, SellerProgress, StepQuestion
from .access import Actor, require_platform
from .assessment import CHECKLIST_TOTAL, count_answered_items, serialise_assessment
from .results import ErrorCode, SurveyActionError, service_action
from .scoring import build_report, general_index

logger = logging.getLogger(__name__)

PAGE_SIZE = 25
STALE_AFTER_DAYS = 30

INDEX_CARD = 1
ASSESSMENT_CARD = 2


@dataclass
class SellerFilters:
    """Quick filters of the seller listing; ``None`` leaves a filter off."""

    query: str = ''
    index_done: bool = False
    assessment_submitted: Optional[bool] = None
    stale: bool = False
    index_visible: Optional[bool] = None
    assessment_visible: Optional[bool] = None

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> 'SellerFilters':
        """Build filters from the listing's query string parameters."""

        def tri_state(name: str) -> Optional[bool]:
            value = params.get(name)
            if value == '1':
                return True
            if value == '0':
                return False
            return None

        return cls(
            query=(params.get('q') or '').strip(),
            index_done=params.get('fIndexDone') == '1',
            assessment_submitted=tri_state('fAssessSent'),
            stale=params.get('fStale30') == '1',
            index_visible=tri_state('fIndexVisible'),
            assessment_visible=tri_state('fAssessVisible'),
        )

    def as_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.query:
            params['q'] = self.query
        if self.index_done:
            params['fIndexDone'] = '1'
        if self.stale:
            params['fStale30'] = '1'
        for name, value in (
            ('fAssessSent', self.assessment_submitted),
            ('fIndexVisible', self.index_visible),
            ('fAssessVisible', self.assessment_visible),
        ):
            if value is not None:
                params[name] = '1' if value else '0'
        return params


@dataclass
class SellerRow:
    id: int
    email: str
    last_login: Optional[datetime]
    show_index: bool
    show_assessment: bool
    reached_results_at: Optional[datetime]
    index_answered: int
    index_total: int
    assessment_answered: int
    assessment_total: int
    assessment_status: str
    assessment_submitted_at: Optional[datetime]
    received_return: bool
    received_return_marked_at: Optional[datetime]
    received_return_marked_by: Optional[str]


@dataclass
class SellerPage:
    rows: List[SellerRow] = field(default_factory=list)
    next_cursor: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None


def encode_cursor(activity: datetime, seller_id: int) -> str:
    payload = json.dumps({'ts': activity.isoformat(), 'id': seller_id}, separators=(',', ':'))
    return base64.urlsafe_b64encode(payload.encode('utf-8')).decode('ascii').rstrip('=')


def decode_cursor(raw: Optional[str]) -> Optional[tuple]:
    """Return ``(timestamp, id)`` for a valid cursor and ``None`` otherwise."""

    if not raw:
        return None
    try:
        padded = raw + '=' * (-len(raw) % 4)
        payload = json.loads(base64.urlsafe_b64decode(padded.encode('ascii')).decode('utf-8'))
    except (ValueError, UnicodeError, binascii.Error):
        return None
    if not isinstance(payload, dict):
        return None
    ts, seller_id = payload.get('ts'), payload.get('id')
    if not isinstance(ts, str) or isinstance(seller_id, bool) or not isinstance(seller_id, int):
        return None
    try:
        moment = datetime.fromisoformat(ts.replace('Z', '+00:00'))
    except ValueError:
        return None
    if timezone.is_naive(moment):
        moment = timezone.make_aware(moment, dt_timezone.utc)
    return moment, seller_id


def _related(instance: Any, name: str) -> Any:
    try:
        return getattr(instance, name)
    except ObjectDoesNotExist:
        return None


def _seller_queryset(filters: SellerFilters):
    queryset = (
        User.objects.filter(profile__role=Profile.Role.SELLER)
        .select_related(
            'profile',
            'survey_progress',
            'survey_progress__received_return_marked_by',
            'assessment',
        )
        .annotate(activity=Coalesce('last_login', 'date_joined'))
    )
    if filters.query:
        queryset = queryset.filter(email__icontains=filters.query)
    if filters.index_done:
        queryset = queryset.filter(survey_progress__reached_results=True)
    if filters.stale:
        cutoff = timezone.now() - timedelta(days=STALE_AFTER_DAYS)
        queryset = queryset.filter(Q(last_login__isnull=True) | Q(last_login__lt=cutoff))
    if filters.index_visible is not None:
        queryset = queryset.filter(profile__show_index=filters.index_visible)
    if filters.assessment_visible is not None:
        queryset = queryset.filter(profile__show_assessment=filters.assessment_visible)
    if filters.assessment_submitted is True:
        queryset = queryset.filter(assessment__status=SellerAssessment.Status.SUBMITTED)
    elif filters.assessment_submitted is False:
        queryset = queryset.exclude(assessment__status=SellerAssessment.Status.SUBMITTED)
    return queryset


def _index_question_ids() -> set:
    return set(
        StepQuestion.objects.filter(step__is_active=True).values_list('question_id', flat=True)
    )


def _build_row(seller: User, answered: int, total: int) -> SellerRow:
    profile = _related(seller, 'profile')
    progress = _related(seller, 'survey_progress')
    assessment = _related(seller, 'assessment')
    marker = progress.received_return_marked_by if progress else None
    return SellerRow(
        id=seller.pk,
        email=seller.email,
        last_login=seller.last_login,
        show_index=bool(profile.show_index) if profile else True,
        show_assessment=bool(profile.show_assessment) if profile else True,
        reached_results_at=progress.reached_results_at if progress else None,
        index_answered=answered,
        index_total=total,
        assessment_answered=count_answered_items(assessment.data if assessment else None),
        assessment_total=CHECKLIST_TOTAL,
        assessment_status=assessment.status if assessment else SellerAssessment.Status.DRAFT,
        assessment_submitted_at=assessment.submitted_at if assessment else None,
        received_return=bool(progress and progress.received_return),
        received_return_marked_at=progress.received_return_marked_at if progress else None,
        received_return_marked_by=marker.email if marker else None,
    )


@service_action
def list_sellers(
    actor: Optional[Actor],
    filters: Optional[SellerFilters] = None,
    cursor: Optional[str] = None,
) -> SellerPage:
    """Return one page of sellers, most recently active first."""

    require_platform(actor)
    filters = filters or SellerFilters()
    queryset = _seller_queryset(filters)
    position = decode_cursor(cursor)
    if position is not None:
        moment, last_id = position
        queryset = queryset.filter(Q(activity__lt=moment) | Q(activity=moment, pk__lt=last_id))
    sellers = list(queryset.order_by('-activity', '-pk')[: PAGE_SIZE + 1])

    page = SellerPage()
    if len(sellers) > PAGE_SIZE:
        sellers = sellers[:PAGE_SIZE]
        page.next_cursor = encode_cursor(sellers[-1].activity, sellers[-1].pk)

    question_ids = _index_question_ids()
    answered_by_seller: Dict[int, int] = {}
    if sellers and question_ids:
        answered_by_seller = dict(
            QuestionResponse.objects.filter(
                seller_id__in=[seller.pk for seller in sellers],
                question_id__in=question_ids,
            )
            .values('seller_id')
            .annotate(answered=Count('pk'))
            .values_list('seller_id', 'answered')
        )
    page.rows = [
        _build_row(seller, answered_by_seller.get(seller.pk, 0), len(question_ids))
        for seller in sellers
    ]
    return page


def _get_seller(seller_id: Any) -> User:
    if isinstance(seller_id, bool) or not isinstance(seller_id, int) or seller_id <= 0:
        raise SurveyActionError(ErrorCode.INVALID_INPUT, 'sellerId is required')
    seller = User.objects.filter(pk=seller_id).select_related('profile').first()
    if seller is None:
        raise SurveyActionError(ErrorCode.NOT_FOUND, 'Seller not found')
    return seller


@service_action
def get_seller_results(actor: Optional[Actor], seller_id: int) -> Dict[str, Any]:
    """Everything the platform detail page shows for one seller."""

    require_platform(actor)
    seller = _get_seller(seller_id)
    profile = _related(seller, 'profile')
    progress = SellerProgress.objects.filter(seller=seller).select_related(
        'received_return_marked_by'
    ).first()
    assessment = SellerAssessment.objects.filter(seller=seller).first()
    dimensions, sections = build_report(seller.pk)
    return {
        'seller': {
            'id': seller.pk,
            'email': seller.email,
            'name': seller.get_full_name(),
            'role': profile.role if profile else Profile.Role.SELLER,
            'date_joined': seller.date_joined,
            'last_login': seller.last_login,
            'show_index': profile.show_index if profile else True,
            'show_assessment': profile.show_assessment if profile else True,
        },
        'progress': {
            'last_step_order': progress.last_step_order if progress else None,
            'reached_results_at': progress.reached_results_at if progress else None,
            'received_return': bool(progress and progress.received_return),
            'received_return_marked_at': progress.received_return_marked_at if progress else None,
            'received_return_marked_by': (
                progress.received_return_marked_by.email
                if progress and progress.received_return_marked_by
                else None
            ),
        },
        'dimensions': dimensions,
        'general_index': general_index(dimensions),
        'sections': sections,
        'assessment': serialise_assessment(assessment),
        'assessment_answered': count_answered_items(assessment.data if assessment else None),
        'assessment_total': CHECKLIST_TOTAL,
    }


@service_action
def set_received_return(actor: Optional[Actor], seller_id: int, received: bool) -> None:
    """Mark (or clear) that the seller already received a return from the team."""

    platform_user = require_platform(actor)
    if not isinstance(received, bool):
        raise SurveyActionError(ErrorCode.INVALID_INPUT, 'sellerId and received are required')
    with transaction.atomic():
        seller = _get_seller(seller_id)
        progress, _ = SellerProgress.objects.select_for_update().get_or_create(seller=seller)
        progress.received_return = received
        if received:
            progress.received_return_marked_at = timezone.now()
            progress.received_return_marked_by_id = platform_user.user_id
        else:
            progress.received_return_marked_at = None
            progress.received_return_marked_by = None
        progress.save(
            update_fields=[
                'received_return',
                'received_return_marked_at',
                'received_return_marked_by',
                'updated_at',
            ]
        )
    logger.info(
        "Platform user %s set received_return=%s for seller %s",
        platform_user.user_id,
        received,
        seller_id,
    )


@service_action
def set_home_card_visibility(actor: Optional[Actor], seller_id: int, card: int, visible: bool) -> None:
    """Show or hide one of the seller's home cards (1 = index, 2 = assessment)."""

    platform_user = require_platform(actor)
    if card not in (INDEX_CARD, ASSESSMENT_CARD) or isinstance(card, bool) or not isinstance(visible, bool):
        raise SurveyActionError(ErrorCode.INVALID_INPUT, 'sellerId, card and visible are required')
    with transaction.atomic():
        seller = _get_seller(seller_id)
        profile, _ = Profile.objects.select_for_update().get_or_create(user=seller)
        field_name = 'show_index' if card == INDEX_CARD else 'show_assessment'
        setattr(profile, field_name, visible)
        profile.save(update_fields=[field_name])
    logger.info(
        "Platform user %s set %s=%s for seller %s",
        platform_user.user_id,
        field_name,
        visible,
        seller_id,
    )
