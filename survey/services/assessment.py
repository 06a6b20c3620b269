"""Draft and submit workflow for the seller business assessment.

The assessment is one JSON document per seller.  Drafts may be saved any
number of times and may be incomplete.  Submitting runs the checklist below
in order, stops at the first item that fails and, on success, freezes the
document: after submission neither drafts nor new submissions are accepted.

The same checklist drives the "answered items" counter shown on the platform
seller listing.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from django.db import transaction
from django.utils import timezone

from ..models import SellerAssessment
from .access import Actor, require_seller
from .results import ErrorCode, SurveyActionError, service_action

logger = logging.getLogger(__name__)

SOLUTIONS = ('unlock_full_service', 'unlock_response', 'unlock_fulfillment')
REGIONS = ('sul', 'sudeste', 'norte', 'nordeste', 'centroOeste')
FISCAL_MODELS = ('compraEVenda', 'filial', 'remessaArmazemGeral')
DIMENSIONS = ('c', 'l', 'a')


def _is_number(value: Any) -> bool:
    # ``True`` is an int in Python; a checkbox value is never a quantity.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _non_negative(value: Any) -> bool:
    return _is_number(value) and value >= 0


def _filled_text(value: Any) -> bool:
    return bool(value) and bool(str(value).strip())


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    return value if isinstance(value, Mapping) else {}


def _number_field(key: str) -> Callable[[Mapping[str, Any]], bool]:
    return lambda data: _non_negative(data.get(key))


def _text_field(key: str) -> Callable[[Mapping[str, Any]], bool]:
    return lambda data: _filled_text(data.get(key))


def _solution(data: Mapping[str, Any]) -> bool:
    return data.get('solution') in SOLUTIONS


def _first_missing_region(data: Mapping[str, Any]) -> Optional[str]:
    sales = _section(data, 'vendaPorRegiao')
    for region in REGIONS:
        if not _non_negative(sales.get(region)):
            return region
    return None


def _regions(data: Mapping[str, Any]) -> bool:
    return _first_missing_region(data) is None


def _region_message(data: Mapping[str, Any]) -> str:
    return f'Fill in the sales for the region: {_first_missing_region(data)}'


def _fiscal_model(data: Mapping[str, Any]) -> bool:
    models = _section(data, 'modeloFiscal')
    return any(bool(models.get(flag)) for flag in FISCAL_MODELS)


def _items_per_order(data: Mapping[str, Any]) -> bool:
    value = data.get('itensPorPedido')
    return _is_number(value) and value > 0


def _dimensions(data: Mapping[str, Any]) -> bool:
    sizes = _section(data, 'dimensoesCm')
    return all(_non_negative(sizes.get(axis)) for axis in DIMENSIONS)


def _reverse_logistics(data: Mapping[str, Any]) -> bool:
    value = data.get('reversaPercent')
    return _is_number(value) and 0 <= value <= 100


Check = Callable[[Mapping[str, Any]], bool]
# A message is either fixed text or built from the failing document.
Message = Union[str, Callable[[Mapping[str, Any]], str]]

CHECKLIST: List[Tuple[Message, Check]] = [
    ('Select a solution', _solution),
    (_region_message, _regions),
    ('Select at least one fiscal model', _fiscal_model),
    ('Enter the monthly order volume', _number_field('volumeMensalPedidos')),
    ('Enter the average number of items per order', _items_per_order),
    ('Enter the number of SKUs', _number_field('skus')),
    ('Enter the average ticket', _number_field('ticketMedio')),
    ('Enter the sales channels', _text_field('canais')),
    ('Enter the monthly flagship GMV', _number_field('gmvFlagshipMensal')),
    ('Enter the monthly marketplaces GMV', _number_field('gmvMarketplacesMensal')),
    ('Enter the months of stock coverage', _number_field('mesesCoberturaEstoque')),
    ('Describe the product profile', _text_field('perfilProduto')),
    ('Enter the average weight (kg)', _number_field('pesoMedioKg')),
    ('Enter the dimensions C, L, A (cm)', _dimensions),
    ('Enter the reverse logistics percentage (0-100)', _reverse_logistics),
    ('Describe any special projects', _text_field('projetosEspeciais')),
]

CHECKLIST_TOTAL = len(CHECKLIST)


def validate_assessment(data: Mapping[str, Any]) -> Optional[str]:
    """Return the message of the first failing checklist item, or ``None``."""

    for message, check in CHECKLIST:
        if not check(data):
            return message(data) if callable(message) else message
    return None


def count_answered_items(data: Optional[Mapping[str, Any]]) -> int:
    """How many checklist items ``data`` satisfies (0 for a missing document)."""

    if not isinstance(data, Mapping):
        return 0
    return sum(1 for _, check in CHECKLIST if check(data))


def serialise_assessment(assessment: Optional[SellerAssessment]) -> Optional[Dict[str, Any]]:
    if assessment is None:
        return None
    return {
        'status': assessment.status,
        'data': assessment.data,
        'submitted_at': assessment.submitted_at,
        'updated_at': assessment.updated_at,
    }


def _require_mapping(data: Any) -> Dict[str, Any]:
    if not isinstance(data, Mapping):
        raise SurveyActionError(ErrorCode.INVALID_INPUT, 'data is required')
    return dict(data)


def _locked_assessment(seller_id: int) -> Optional[SellerAssessment]:
    assessment = (
        SellerAssessment.objects.select_for_update()
        .filter(seller_id=seller_id)
        .first()
    )
    if assessment is not None and assessment.is_submitted:
        raise SurveyActionError(
            ErrorCode.ALREADY_SUBMITTED,
            'The assessment was already submitted and can no longer be changed.',
        )
    return assessment


@service_action
def get_assessment(actor: Optional[Actor]) -> Optional[Dict[str, Any]]:
    seller = require_seller(actor)
    return serialise_assessment(SellerAssessment.objects.filter(seller_id=seller.user_id).first())


@service_action
def save_assessment_draft(actor: Optional[Actor], data: Any) -> None:
    """Store ``data`` as the seller's draft, replacing any previous draft."""

    seller = require_seller(actor)
    payload = _require_mapping(data)
    with transaction.atomic():
        assessment = _locked_assessment(seller.user_id)
        if assessment is None:
            assessment = SellerAssessment(seller_id=seller.user_id)
        assessment.status = SellerAssessment.Status.DRAFT
        assessment.data = payload
        assessment.save()
    logger.info("Seller %s saved an assessment draft", seller.user_id)


@service_action
def submit_assessment(actor: Optional[Actor], data: Any) -> None:
    """Validate and submit the assessment; the stored document becomes final."""

    seller = require_seller(actor)
    payload = _require_mapping(data)
    with transaction.atomic():
        assessment = _locked_assessment(seller.user_id)
        error = validate_assessment(payload)
        if error:
            raise SurveyActionError(ErrorCode.VALIDATION_ERROR, error)
        if assessment is None:
            assessment = SellerAssessment(seller_id=seller.user_id)
        assessment.status = SellerAssessment.Status.SUBMITTED
        assessment.data = payload
        assessment.submitted_at = timezone.now()
        assessment.save()
    logger.info("Seller %s submitted the assessment", seller.user_id)
