"""Django admin configuration for survey models."""

from django.contrib import admin
from django.contrib.auth.models import User
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import (
    PasswordResetToken,
    Profile,
    Question,
    QuestionOption,
    QuestionResponse,
    SellerAssessment,
    SellerProgress,
    StepQuestion,
    SurveyStep,
)


class ProfileInline(admin.StackedInline):
    """Allows editing of the Profile model on the same page as the User model."""
    model = Profile
    can_delete = False
    verbose_name_plural = 'profile'


class UserAdmin(BaseUserAdmin):
    """Extend the default User admin to include the survey role."""
    inlines = (ProfileInline,)


class QuestionOptionInline(admin.TabularInline):
    model = QuestionOption
    extra = 0


class StepQuestionInline(admin.TabularInline):
    model = StepQuestion
    extra = 0
    autocomplete_fields = ('question',)


@admin.register(SurveyStep)
class SurveyStepAdmin(admin.ModelAdmin):
    list_display = ('order', 'key', 'title', 'is_active')
    list_filter = ('is_active',)
    ordering = ('order',)
    inlines = (StepQuestionInline,)


@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = ('key', 'label', 'is_active')
    list_filter = ('is_active',)
    search_fields = ('key', 'label')
    inlines = (QuestionOptionInline,)


@admin.register(SellerProgress)
class SellerProgressAdmin(admin.ModelAdmin):
    list_display = ('seller', 'last_step_order', 'reached_results', 'received_return')
    list_filter = ('reached_results', 'received_return')
    search_fields = ('seller__email',)


@admin.register(SellerAssessment)
class SellerAssessmentAdmin(admin.ModelAdmin):
    list_display = ('seller', 'status', 'submitted_at', 'updated_at')
    list_filter = ('status',)
    search_fields = ('seller__email',)


admin.site.unregister(User)
admin.site.register(User, UserAdmin)
admin.site.register(QuestionResponse)
admin.site.register(PasswordResetToken)
