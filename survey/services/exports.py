"""Per-seller CSV and Excel exports for platform users.

Two tables are available for every seller:

``answers``
    One row per question of every active step, in wizard order.  Questions
    the seller has not answered keep their answer cells empty.
``assessment``
    Exactly one row with the assessment document flattened into columns.
    A seller without an assessment still gets a row carrying only the
    seller columns.

Tables render as CSV (minimal RFC 4180 quoting, ``\\n`` line endings) or as
an Excel workbook via ``openpyxl``.  Timestamps are UTC ISO 8601 strings with
milliseconds and a ``Z`` suffix; booleans are written ``true``/``false``.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from datetime import datetime
from datetime import timezone as dt_timezone
from io import BytesIO, StringIO
from typing import Any, Dict, List, Mapping, Optional

from openpyxl import Workbook

from django.contrib.auth.models import User

from ..models import QuestionResponse, SellerAssessment, StepQuestion
from .access import Actor, require_platform
from .results import ErrorCode, SurveyActionError, service_action

ANSWERS_HEADER = [
    'sellerId',
    'sellerEmail',
    'stepOrder',
    'stepKey',
    'stepTitle',
    'questionOrder',
    'questionKey',
    'questionLabel',
    'optionValue',
    'optionLabel',
    'optionScore',
    'answeredAt',
]

ASSESSMENT_HEADER = [
    'sellerId',
    'sellerEmail',
    'status',
    'submittedAt',
    'updatedAt',
    'solution',
    'venda_sul',
    'venda_sudeste',
    'venda_norte',
    'venda_nordeste',
    'venda_centro_oeste',
    'modelo_compra_e_venda',
    'modelo_filial',
    'modelo_remessa_armazem_geral',
    'volumeMensalPedidos',
    'itensPorPedido',
    'skus',
    'ticketMedio',
    'canais',
    'gmvFlagshipMensal',
    'gmvMarketplacesMensal',
    'mesesCoberturaEstoque',
    'perfilProduto',
    'pesoMedioKg',
    'dimensao_c',
    'dimensao_l',
    'dimensao_a',
    'reversaPercent',
    'projetosEspeciais',
    'comentarios',
]

CSV_CONTENT_TYPE = 'text/csv; charset=utf-8'
XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


class ExportError(Exception):
    """Raised when an export cannot be produced in the requested shape."""


@dataclass
class ExportTable:
    name: str
    headers: List[str]
    rows: List[List[Any]]


@dataclass
class ExportFile:
    filename: str
    content_type: str
    content: bytes


def format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return ''
    stamp = value.astimezone(dt_timezone.utc).isoformat(timespec='milliseconds')
    return stamp.replace('+00:00', 'Z')


def format_cell(value: Any) -> str:
    """Render a value the way the CSV consumers expect it."""

    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, (dict, list)):
        return ''
    return str(value)


def answers_table(seller: User) -> ExportTable:
    step_questions = (
        StepQuestion.objects.filter(step__is_active=True)
        .select_related('step', 'question')
        .order_by('step__order', 'step_id', 'order', 'pk')
    )
    responses: Dict[int, QuestionResponse] = {
        response.question_id: response
        for response in QuestionResponse.objects.filter(seller=seller).select_related('option')
    }
    rows: List[List[Any]] = []
    for sq in step_questions:
        response = responses.get(sq.question_id)
        option = response.option if response else None
        rows.append(
            [
                seller.pk,
                seller.email,
                sq.step.order,
                sq.step.key,
                sq.step.title,
                sq.order,
                sq.question.key,
                sq.question.label,
                option.value if option else None,
                option.label if option else None,
                option.score if option else None,
                format_timestamp(response.updated_at) if response else None,
            ]
        )
    return ExportTable(name=f'answers-{seller.pk}', headers=list(ANSWERS_HEADER), rows=rows)


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    return value if isinstance(value, Mapping) else {}


def assessment_row(seller: User, assessment: Optional[SellerAssessment]) -> List[Any]:
    if assessment is None:
        return [seller.pk, seller.email] + [None] * (len(ASSESSMENT_HEADER) - 2)
    data: Mapping[str, Any] = assessment.data if isinstance(assessment.data, Mapping) else {}
    sales = _section(data, 'vendaPorRegiao')
    fiscal = _section(data, 'modeloFiscal')
    sizes = _section(data, 'dimensoesCm')
    return [
        seller.pk,
        seller.email,
        assessment.status,
        format_timestamp(assessment.submitted_at),
        format_timestamp(assessment.updated_at),
        data.get('solution'),
        sales.get('sul'),
        sales.get('sudeste'),
        sales.get('norte'),
        sales.get('nordeste'),
        sales.get('centroOeste'),
        bool(fiscal.get('compraEVenda')),
        bool(fiscal.get('filial')),
        bool(fiscal.get('remessaArmazemGeral')),
        data.get('volumeMensalPedidos'),
        data.get('itensPorPedido'),
        data.get('skus'),
        data.get('ticketMedio'),
        data.get('canais'),
        data.get('gmvFlagshipMensal'),
        data.get('gmvMarketplacesMensal'),
        data.get('mesesCoberturaEstoque'),
        data.get('perfilProduto'),
        data.get('pesoMedioKg'),
        sizes.get('c'),
        sizes.get('l'),
        sizes.get('a'),
        data.get('reversaPercent'),
        data.get('projetosEspeciais'),
        data.get('comentarios'),
    ]


def assessment_table(seller: User) -> ExportTable:
    assessment = SellerAssessment.objects.filter(seller=seller).first()
    return ExportTable(
        name=f'assessment-{seller.pk}',
        headers=list(ASSESSMENT_HEADER),
        rows=[assessment_row(seller, assessment)],
    )


def render_csv(table: ExportTable) -> str:
    output = StringIO()
    writer = csv.writer(output, lineterminator='\n')
    writer.writerow(table.headers)
    for row in table.rows:
        writer.writerow([format_cell(value) for value in row])
    return output.getvalue()


def render_xlsx(table: ExportTable) -> bytes:
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = table.name.split('-')[0].capitalize()
    worksheet.append(table.headers)
    for row in table.rows:
        worksheet.append([
            value if isinstance(value, (int, float)) and not isinstance(value, bool) else format_cell(value)
            for value in row
        ])
    stream = BytesIO()
    workbook.save(stream)
    return stream.getvalue()


TABLE_BUILDERS = {
    'answers': answers_table,
    'assessment': assessment_table,
}


def render_export(table: ExportTable, export_format: str = 'csv') -> ExportFile:
    export_format = (export_format or 'csv').lower()
    if export_format == 'csv':
        return ExportFile(
            filename=f'{table.name}.csv',
            content_type=CSV_CONTENT_TYPE,
            content=render_csv(table).encode('utf-8'),
        )
    if export_format == 'xlsx':
        return ExportFile(
            filename=f'{table.name}.xlsx',
            content_type=XLSX_CONTENT_TYPE,
            content=render_xlsx(table),
        )
    raise ExportError(f'Unsupported export format: {export_format}')


@service_action
def export_seller_table(
    actor: Optional[Actor],
    seller_id: int,
    kind: str,
    export_format: str = 'csv',
) -> ExportFile:
    """Build the ``answers`` or ``assessment`` export for one seller.

    Raises ``ExportError`` for an unknown table or format; authorization and
    missing sellers come back as failed results.
    """

    require_platform(actor)
    builder = TABLE_BUILDERS.get(kind)
    if builder is None:
        raise ExportError(f'Unknown export: {kind}')
    seller = User.objects.filter(pk=seller_id).first()
    if seller is None:
        raise SurveyActionError(ErrorCode.NOT_FOUND, 'Seller not found')
    return render_export(builder(seller), export_format)
