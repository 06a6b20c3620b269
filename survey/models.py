"""Data models for the Commercial Survey application.

This module defines the database schema using Django's ORM.  The scored
survey is modelled as ordered steps that share questions through a join
table, each question offering the fixed answer values ``0``, ``1``, ``3`` and
``5``.  Seller answers, progress through the wizard and the free-form
assessment are stored per seller.  Accounts reuse Django's ``User`` and carry
their role and home-page visibility flags on a one-to-one ``Profile``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from django.contrib.auth.models import User
from django.db import models
from django.utils import timezone

# Order reserved for the results step at the end of the wizard.
RESULTS_STEP_ORDER = 8

OPTION_VALUES = ('0', '1', '3', '5')


class Profile(models.Model):
    """Role and visibility settings associated with a Django auth ``User``.

    The built-in ``User`` handles authentication (the email doubles as the
    username) and records ``last_login``.  The profile decides whether the
    account belongs to platform staff or to a seller and which cards the
    seller sees on their home page.
    """

    class Role(models.TextChoices):
        PLATFORM = 'platform', 'Platform'
        SELLER = 'seller', 'Seller'

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='profile')
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.SELLER)
    show_index = models.BooleanField(default=True)
    show_assessment = models.BooleanField(default=True)

    def __str__(self) -> str:  # pragma: no cover
        return f"Profile of {self.user.username} ({self.role})"


class SurveyStep(models.Model):
    """An ordered section of the maturity survey (e.g. Payments)."""

    key = models.CharField(max_length=100, unique=True)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    order = models.IntegerField()
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['order']
        indexes = [
            models.Index(fields=['order'], name='survey_steps_order_idx'),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.order}. {self.title}"


class Question(models.Model):
    """A survey question; steps reference it through ``StepQuestion``."""

    key = models.CharField(max_length=100, unique=True)
    label = models.TextField()
    help_text = models.TextField(blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:  # pragma: no cover
        return self.key


class QuestionOption(models.Model):
    """One selectable answer of a question.

    The ``value`` is one of ``0``, ``1``, ``3`` or ``5`` and the ``score``
    mirrors it.  ``0`` is conventionally the "don't know" answer.
    """

    question = models.ForeignKey(Question, on_delete=models.CASCADE, related_name='options')
    value = models.CharField(max_length=100)
    label = models.TextField()
    order = models.IntegerField()
    score = models.IntegerField()
    is_active = models.BooleanField(default=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['question', 'value'],
                name='question_options_question_id_value_unique',
            ),
            models.CheckConstraint(
                condition=models.Q(value__in=OPTION_VALUES),
                name='question_options_value_allowed',
            ),
            models.CheckConstraint(
                condition=models.Q(score__in=[int(v) for v in OPTION_VALUES]),
                name='question_options_score_allowed',
            ),
        ]
        indexes = [
            models.Index(fields=['question', 'order'], name='question_options_q_order_idx'),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.question_id}:{self.value}"


class StepQuestion(models.Model):
    """Places a question inside a step with a per-step order."""

    step = models.ForeignKey(SurveyStep, on_delete=models.PROTECT, related_name='step_questions')
    question = models.ForeignKey(Question, on_delete=models.PROTECT, related_name='step_questions')
    order = models.IntegerField()
    required = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['step', 'question'],
                name='step_questions_step_id_question_id_unique',
            )
        ]
        indexes = [
            models.Index(fields=['step', 'order'], name='step_questions_step_order_idx'),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"StepQuestion<{self.step_id}:{self.question_id}>"


class QuestionResponse(models.Model):
    """The option a seller picked for a question.

    The unique constraint keeps one answer per question per seller; saving a
    step again overwrites the stored option.
    """

    seller = models.ForeignKey(User, on_delete=models.CASCADE, related_name='question_responses')
    question = models.ForeignKey(Question, on_delete=models.CASCADE, related_name='responses')
    option = models.ForeignKey(QuestionOption, on_delete=models.CASCADE, related_name='responses')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['seller', 'question'],
                name='question_responses_seller_id_question_id_unique',
            )
        ]
        indexes = [
            models.Index(fields=['seller'], name='question_responses_seller_idx'),
            models.Index(fields=['question'], name='question_responses_q_idx'),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Response<{self.seller_id}:{self.question_id}>"


class SellerProgress(models.Model):
    """Tracks how far a seller went through the survey wizard.

    ``last_step_order`` only ever grows and ``reached_results`` is a one-way
    marker set when the seller arrives at the results step; together they
    decide whether earlier steps are locked.  The ``received_return`` fields
    are maintained by platform users only.
    """

    seller = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name='survey_progress',
    )
    last_step = models.ForeignKey(
        SurveyStep,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
    )
    last_step_order = models.IntegerField(null=True, blank=True)
    reached_results = models.BooleanField(default=False)
    reached_results_at = models.DateTimeField(null=True, blank=True)
    received_return = models.BooleanField(default=False)
    received_return_marked_at = models.DateTimeField(null=True, blank=True)
    received_return_marked_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def is_completed(self) -> bool:
        """True once the seller reached the results step."""

        return self.reached_results or (self.last_step_order or 0) >= RESULTS_STEP_ORDER

    def advance_to(self, step: SurveyStep) -> None:
        """Record ``step`` as the latest saved step without lowering the order."""

        self.last_step = step
        self.last_step_order = max(self.last_step_order or step.order, step.order)

    def mark_results_reached(self, now: Optional[datetime] = None) -> None:
        """Set the one-way results marker; the first timestamp is kept."""

        if not self.reached_results:
            self.reached_results = True
            self.reached_results_at = now or timezone.now()
        elif self.reached_results_at is None:
            self.reached_results_at = now or timezone.now()
        self.last_step_order = max(self.last_step_order or 0, RESULTS_STEP_ORDER)

    def __str__(self) -> str:  # pragma: no cover
        return f"Progress<{self.seller_id}:{self.last_step_order}>"


class SellerAssessment(models.Model):
    """Free-form business assessment stored as a JSON document per seller."""

    class Status(models.TextChoices):
        DRAFT = 'draft', 'Draft'
        SUBMITTED = 'submitted', 'Submitted'

    seller = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name='assessment',
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)
    data = models.JSONField(default=dict)
    submitted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def is_submitted(self) -> bool:
        return self.status == self.Status.SUBMITTED

    def __str__(self) -> str:  # pragma: no cover
        return f"Assessment<{self.seller_id}:{self.status}>"


class PasswordResetToken(models.Model):
    """Single-use password reset token; only the sha256 digest is stored."""

    email = models.EmailField(max_length=255)
    token_hash = models.CharField(max_length=255, unique=True)
    expires_at = models.DateTimeField()
    used_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['email'], name='reset_tokens_email_idx'),
        ]

    def is_usable(self, now: Optional[datetime] = None) -> bool:
        return self.used_at is None and self.expires_at >= (now or timezone.now())

    def __str__(self) -> str:  # pragma: no cover
        return f"PasswordResetToken<{self.email}>"
