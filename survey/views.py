"""View functions for the Commercial Survey application.

Pages are server rendered with Django templates; the same operations are
also exposed as small JSON endpoints under ``/api/`` for client-side
scripts.  Views never implement business rules themselves: they build an
``Actor`` from the signed-in user, call ``survey.services`` and translate
the returned ``ActionResult`` into a redirect with a message (pages) or an
HTTP status (JSON).

Every view re-checks the role of the signed-in user.  Sellers landing on a
platform page are sent to their home page and vice versa.
"""

from __future__ import annotations

import dataclasses
import json
from typing import Any, Dict, Optional

from django.contrib import messages
from django.contrib.auth import authenticate, login, logout
from django.contrib.auth.decorators import login_required
from django.core.serializers.json import DjangoJSONEncoder
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.shortcuts import redirect, render
from django.urls import reverse
from django.views.decorators.http import require_http_methods, require_POST

from .forms import (
    AssessmentForm,
    ForgotPasswordForm,
    LoginForm,
    ResetPasswordForm,
    SignupForm,
    StepAnswersForm,
)
from .models import Profile
from .services import accounts, assessment, exports, platform, scoring, wizard
from .services.access import Actor
from .services.features import FeatureFlags
from .services.results import ActionResult, ErrorCode
from .services.turnstile import client_ip

HTTP_STATUS_BY_CODE = {
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.STEP_NOT_FOUND: 404,
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.QUESTION_NOT_IN_STEP: 400,
    ErrorCode.OPTION_NOT_FOUND: 400,
    ErrorCode.INVALID_TOKEN: 400,
    ErrorCode.SURVEY_COMPLETED: 409,
    ErrorCode.ALREADY_SUBMITTED: 409,
    ErrorCode.EMAIL_TAKEN: 409,
    ErrorCode.RATE_LIMITED: 429,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _actor(request: HttpRequest) -> Optional[Actor]:
    return Actor.from_user(getattr(request, 'user', None))


def _landing_url(actor: Optional[Actor]) -> str:
    if actor is None:
        return reverse('login')
    if actor.is_platform:
        return reverse('platform_sellers')
    return reverse('seller_home')


def _to_jsonable(value: Any) -> Any:
    """Convert dataclasses and integral floats into plain JSON values."""

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _to_jsonable(dataclasses.asdict(value))
    if isinstance(value, dict):
        return {key: _to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _result_response(result: ActionResult) -> JsonResponse:
    status = 200 if result.ok else HTTP_STATUS_BY_CODE.get(result.code, 400)
    return JsonResponse(_to_jsonable(result.as_dict()), status=status, encoder=DjangoJSONEncoder)


def _load_json_body(request: HttpRequest) -> Dict[str, Any] | None:
    try:
        payload = json.loads(request.body.decode('utf-8') or '{}')
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


def _invalid_payload() -> JsonResponse:
    return JsonResponse(
        {'ok': False, 'code': ErrorCode.INVALID_INPUT.value, 'message': 'Invalid payload.'},
        status=400,
    )


def _wrong_role_redirect(request: HttpRequest, role: str) -> Optional[HttpResponse]:
    """Redirect signed-in users whose role does not match ``role``."""

    actor = _actor(request)
    if actor is None or actor.role != role:
        return redirect(_landing_url(actor))
    return None


def _next_step_key(current_key: str) -> Optional[str]:
    keys = [step['key'] for step in wizard.list_active_steps()]
    if current_key in keys:
        index = keys.index(current_key)
        if index + 1 < len(keys):
            return keys[index + 1]
    return None


def _previous_step_key(current_key: str) -> Optional[str]:
    keys = [step['key'] for step in wizard.list_active_steps()]
    if current_key in keys:
        index = keys.index(current_key)
        if index > 0:
            return keys[index - 1]
    return None


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


def login_view(request: HttpRequest) -> HttpResponse:
    """Authenticate a user via email and password."""
    if request.user.is_authenticated:
        return redirect('home')
    if request.method == 'POST':
        form = LoginForm(request.POST)
        if form.is_valid():
            email = accounts.normalise_email(form.cleaned_data['email'])
            password = form.cleaned_data['password']
            account = accounts.find_user_by_email(email)
            user = authenticate(request, username=account.username, password=password) if account else None
            if user:
                login(request, user)
                return redirect('home')
            messages.error(request, 'Invalid email or password.')
    else:
        form = LoginForm()
    return render(request, 'survey/accounts/login.html', {'form': form})


@require_POST
def logout_view(request: HttpRequest) -> HttpResponse:
    """Log the user out and redirect to the login page."""
    logout(request)
    return redirect('login')


def signup_view(request: HttpRequest) -> HttpResponse:
    """Let a new seller create an account."""
    if request.user.is_authenticated:
        return redirect('home')
    if request.method == 'POST':
        form = SignupForm(request.POST)
        if form.is_valid():
            result = accounts.create_seller(
                form.cleaned_data['email'],
                form.cleaned_data['password'],
                name=form.cleaned_data.get('name'),
                turnstile_token=request.POST.get('cf-turnstile-response'),
                remote_ip=client_ip(request),
            )
            if result.ok:
                messages.success(request, 'Account created. You can now sign in.')
                return redirect('login')
            messages.error(request, result.message)
    else:
        form = SignupForm()
    return render(request, 'survey/accounts/signup.html', {'form': form})


def forgot_password_view(request: HttpRequest) -> HttpResponse:
    """Request a password reset link by e-mail."""
    if request.method == 'POST':
        form = ForgotPasswordForm(request.POST)
        if form.is_valid():
            result = accounts.request_password_reset(form.cleaned_data['email'])
            if result.ok:
                messages.success(
                    request,
                    'If the address belongs to an account, a reset link is on its way.',
                )
                return redirect('login')
            messages.error(request, result.message)
    else:
        form = ForgotPasswordForm()
    return render(request, 'survey/accounts/forgot_password.html', {'form': form})


def reset_password_view(request: HttpRequest) -> HttpResponse:
    """Choose a new password using the token from the reset e-mail."""
    if request.method == 'POST':
        form = ResetPasswordForm(request.POST)
        if form.is_valid():
            result = accounts.reset_password(form.cleaned_data['token'], form.cleaned_data['password'])
            if result.ok:
                messages.success(request, 'Password updated. You can now sign in.')
                return redirect('login')
            messages.error(request, result.message)
    else:
        form = ResetPasswordForm(initial={'token': request.GET.get('token', '')})
    return render(request, 'survey/accounts/reset_password.html', {'form': form})


@login_required
def home(request: HttpRequest) -> HttpResponse:
    """Send the user to the landing page of their role."""
    return redirect(_landing_url(_actor(request)))


# ---------------------------------------------------------------------------
# Seller pages
# ---------------------------------------------------------------------------


@login_required
def seller_home(request: HttpRequest) -> HttpResponse:
    """Seller home with the index and assessment cards the platform enabled."""
    wrong_role = _wrong_role_redirect(request, Profile.Role.SELLER)
    if wrong_role:
        return wrong_role
    profile = Profile.objects.filter(user=request.user).first()
    flags = FeatureFlags.from_settings()
    assessment_result = assessment.get_assessment(_actor(request))
    return render(
        request,
        'survey/seller/home.html',
        {
            'show_index': profile.show_index if profile else True,
            'show_assessment': profile.show_assessment if profile else True,
            'index_progress': scoring.index_progress(request.user.pk),
            'survey_locked': wizard.is_locked(request.user.pk, flags),
            'assessment': assessment_result.data if assessment_result.ok else None,
        },
    )


@login_required
def seller_index(request: HttpRequest) -> HttpResponse:
    """Entry point of the wizard: first step, or the results once locked."""
    wrong_role = _wrong_role_redirect(request, Profile.Role.SELLER)
    if wrong_role:
        return wrong_role
    if wizard.is_locked(request.user.pk, FeatureFlags.from_settings()):
        return redirect('seller_results')
    steps = wizard.list_active_steps()
    if not steps:
        return redirect('seller_results')
    return redirect('seller_step', step_key=steps[0]['key'])


@login_required
@require_http_methods(["GET", "POST"])
def seller_step(request: HttpRequest, step_key: str) -> HttpResponse:
    """Render one wizard step and store its answers."""
    wrong_role = _wrong_role_redirect(request, Profile.Role.SELLER)
    if wrong_role:
        return wrong_role
    actor = _actor(request)
    flags = FeatureFlags.from_settings()
    loaded = wizard.get_step_with_questions(actor, step_key, flags)
    if not loaded.ok:
        if loaded.code == ErrorCode.SURVEY_COMPLETED:
            messages.info(request, 'Your survey is complete. Here are your results.')
            return redirect('seller_results')
        messages.error(request, loaded.message)
        return redirect('seller_home')

    if request.method == 'POST':
        form = StepAnswersForm(loaded.data, request.POST)
        if form.is_valid():
            saved = wizard.save_step_answers(actor, step_key, form.answers(), flags)
            if saved.ok:
                next_key = _next_step_key(step_key)
                if next_key:
                    return redirect('seller_step', step_key=next_key)
                return redirect('seller_results')
            if saved.code == ErrorCode.SURVEY_COMPLETED:
                return redirect('seller_results')
            messages.error(request, saved.message)
        else:
            messages.error(request, 'Answer every question to continue.')
    else:
        form = StepAnswersForm(loaded.data)

    steps = wizard.list_active_steps()
    return render(
        request,
        'survey/seller/step.html',
        {
            'step': loaded.data['step'],
            'form': form,
            'steps': steps,
            'previous_step_key': _previous_step_key(step_key),
        },
    )


@login_required
def seller_results(request: HttpRequest) -> HttpResponse:
    """Results step: records that it was reached and shows the dimensions."""
    wrong_role = _wrong_role_redirect(request, Profile.Role.SELLER)
    if wrong_role:
        return wrong_role
    actor = _actor(request)
    wizard.mark_reached_results(actor, FeatureFlags.from_settings())
    result = scoring.get_results_by_dimension(actor)
    return render(
        request,
        'survey/seller/results.html',
        {
            'dimensions': result.data['dimensions'] if result.ok else [],
            'general_index': result.data['general_index'] if result.ok else None,
        },
    )


@login_required
@require_http_methods(["GET", "POST"])
def seller_assessment(request: HttpRequest) -> HttpResponse:
    """Fill in, save as draft or submit the business assessment."""
    wrong_role = _wrong_role_redirect(request, Profile.Role.SELLER)
    if wrong_role:
        return wrong_role
    actor = _actor(request)
    current = assessment.get_assessment(actor).data
    submitted = bool(current and current['status'] == 'submitted')

    if request.method == 'POST' and not submitted:
        form = AssessmentForm(request.POST)
        if form.is_valid():
            document = form.to_document()
            if request.POST.get('action') == 'submit':
                result = assessment.submit_assessment(actor, document)
                success_message = 'Assessment submitted. Thank you!'
            else:
                result = assessment.save_assessment_draft(actor, document)
                success_message = 'Draft saved.'
            if result.ok:
                messages.success(request, success_message)
                return redirect('seller_assessment')
            messages.error(request, result.message)
    elif request.method == 'POST':
        messages.error(request, 'The assessment was already submitted and can no longer be changed.')
        return redirect('seller_assessment')
    else:
        form = AssessmentForm(initial=AssessmentForm.initial_from_data(current['data'] if current else None))

    if submitted:
        for field in form.fields.values():
            field.disabled = True
    return render(
        request,
        'survey/seller/assessment.html',
        {'form': form, 'assessment': current, 'submitted': submitted},
    )


# ---------------------------------------------------------------------------
# Platform pages
# ---------------------------------------------------------------------------


@login_required
def platform_sellers(request: HttpRequest) -> HttpResponse:
    """Paginated seller listing with quick filters."""
    wrong_role = _wrong_role_redirect(request, Profile.Role.PLATFORM)
    if wrong_role:
        return wrong_role
    filters = platform.SellerFilters.from_params(request.GET)
    result = platform.list_sellers(_actor(request), filters, request.GET.get('cursor'))
    page = result.data
    next_params = None
    if page.next_cursor:
        next_params = dict(filters.as_params(), cursor=page.next_cursor)
    return render(
        request,
        'survey/platform/sellers.html',
        {
            'page': page,
            'filters': filters,
            'next_params': next_params,
            'page_size': platform.PAGE_SIZE,
        },
    )


@login_required
def platform_seller_detail(request: HttpRequest, seller_id: int) -> HttpResponse:
    """Index results, answers and assessment of one seller."""
    wrong_role = _wrong_role_redirect(request, Profile.Role.PLATFORM)
    if wrong_role:
        return wrong_role
    result = platform.get_seller_results(_actor(request), seller_id)
    if not result.ok:
        return render(request, 'survey/platform/not_found.html', {'message': result.message}, status=404)
    return render(request, 'survey/platform/seller_detail.html', result.data)


@login_required
@require_POST
def platform_set_received_return(request: HttpRequest, seller_id: int) -> HttpResponse:
    wrong_role = _wrong_role_redirect(request, Profile.Role.PLATFORM)
    if wrong_role:
        return wrong_role
    received = request.POST.get('received') == '1'
    result = platform.set_received_return(_actor(request), seller_id, received)
    if not result.ok:
        messages.error(request, result.message)
    return redirect('platform_seller_detail', seller_id=seller_id)


@login_required
@require_POST
def platform_set_card_visibility(request: HttpRequest, seller_id: int) -> HttpResponse:
    wrong_role = _wrong_role_redirect(request, Profile.Role.PLATFORM)
    if wrong_role:
        return wrong_role
    try:
        card = int(request.POST.get('card', ''))
    except ValueError:
        card = 0
    visible = request.POST.get('visible') == '1'
    result = platform.set_home_card_visibility(_actor(request), seller_id, card, visible)
    if not result.ok:
        messages.error(request, result.message)
    return redirect('platform_seller_detail', seller_id=seller_id)


def _export_response(request: HttpRequest, seller_id: int, kind: str) -> HttpResponse:
    """Download the answers or assessment table of a seller as CSV or Excel.

    Failures answer with plain text bodies.  Anyone but a platform user gets
    403, an unknown seller 404 and an unknown format 400.
    """

    try:
        result = exports.export_seller_table(
            _actor(request),
            seller_id,
            kind,
            request.GET.get('format', 'csv'),
        )
    except exports.ExportError as exc:
        return HttpResponse(str(exc), status=400, content_type='text/plain')
    if not result.ok:
        if result.code in (ErrorCode.UNAUTHORIZED, ErrorCode.FORBIDDEN):
            return HttpResponse('Forbidden', status=403, content_type='text/plain')
        status = HTTP_STATUS_BY_CODE.get(result.code, 400)
        return HttpResponse(result.message, status=status, content_type='text/plain')
    export_file = result.data
    response = HttpResponse(export_file.content, content_type=export_file.content_type)
    response['Content-Disposition'] = f'attachment; filename={export_file.filename}'
    return response


@require_http_methods(["GET"])
def platform_export_answers(request: HttpRequest, seller_id: int) -> HttpResponse:
    return _export_response(request, seller_id, 'answers')


@require_http_methods(["GET"])
def platform_export_assessment(request: HttpRequest, seller_id: int) -> HttpResponse:
    return _export_response(request, seller_id, 'assessment')


# ---------------------------------------------------------------------------
# JSON API
# ---------------------------------------------------------------------------


@require_http_methods(["GET", "POST"])
def api_step(request: HttpRequest, step_key: str) -> JsonResponse:
    """GET loads a step with its questions; POST saves ``{"answers": [...]}``."""

    actor = _actor(request)
    flags = FeatureFlags.from_settings()
    if request.method == 'GET':
        return _result_response(wizard.get_step_with_questions(actor, step_key, flags))
    payload = _load_json_body(request)
    if payload is None:
        return _invalid_payload()
    return _result_response(wizard.save_step_answers(actor, step_key, payload.get('answers'), flags))


@require_http_methods(["GET"])
def api_results(request: HttpRequest) -> JsonResponse:
    return _result_response(scoring.get_results_by_dimension(_actor(request)))


@require_http_methods(["POST"])
def api_mark_reached_results(request: HttpRequest) -> JsonResponse:
    return _result_response(wizard.mark_reached_results(_actor(request), FeatureFlags.from_settings()))


@require_http_methods(["GET"])
def api_assessment(request: HttpRequest) -> JsonResponse:
    return _result_response(assessment.get_assessment(_actor(request)))


@require_http_methods(["POST"])
def api_assessment_draft(request: HttpRequest) -> JsonResponse:
    payload = _load_json_body(request)
    if payload is None:
        return _invalid_payload()
    return _result_response(assessment.save_assessment_draft(_actor(request), payload.get('data')))


@require_http_methods(["POST"])
def api_assessment_submit(request: HttpRequest) -> JsonResponse:
    payload = _load_json_body(request)
    if payload is None:
        return _invalid_payload()
    return _result_response(assessment.submit_assessment(_actor(request), payload.get('data')))


@require_http_methods(["GET"])
def api_platform_sellers(request: HttpRequest) -> JsonResponse:
    filters = platform.SellerFilters.from_params(request.GET)
    result = platform.list_sellers(_actor(request), filters, request.GET.get('cursor'))
    if result.ok:
        page = result.data
        result = ActionResult.success(
            {'sellers': page.rows, 'next_cursor': page.next_cursor, 'limit': platform.PAGE_SIZE}
        )
    return _result_response(result)


@require_http_methods(["GET"])
def api_platform_seller(request: HttpRequest, seller_id: int) -> JsonResponse:
    return _result_response(platform.get_seller_results(_actor(request), seller_id))


@require_http_methods(["POST"])
def api_platform_received_return(request: HttpRequest, seller_id: int) -> JsonResponse:
    payload = _load_json_body(request)
    if payload is None:
        return _invalid_payload()
    return _result_response(
        platform.set_received_return(_actor(request), seller_id, payload.get('received'))
    )


@require_http_methods(["POST"])
def api_platform_card_visibility(request: HttpRequest, seller_id: int) -> JsonResponse:
    payload = _load_json_body(request)
    if payload is None:
        return _invalid_payload()
    return _result_response(
        platform.set_home_card_visibility(
            _actor(request),
            seller_id,
            payload.get('card'),
            payload.get('visible'),
        )
    )
