"""Upper-case the first letter of question and option labels.

Labels imported from spreadsheets sometimes start in lower case.  Only the
first character is touched; labels that already start with an upper-case
letter, a digit or punctuation are left alone.
"""

from __future__ import annotations

from django.core.management.base import BaseCommand
from django.db import transaction

from survey.models import Question, QuestionOption


def capitalize_first(label: str) -> str:
    if not label:
        return label
    return label[0].upper() + label[1:]


def _fix_labels(queryset) -> int:
    changed = []
    for obj in queryset.only('pk', 'label'):
        fixed = capitalize_first(obj.label)
        if fixed != obj.label:
            obj.label = fixed
            changed.append(obj)
    if changed:
        queryset.model.objects.bulk_update(changed, ['label'])
    return len(changed)


class Command(BaseCommand):
    help = "Capitalise the first letter of question and option labels."

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report how many labels would change without saving.",
        )

    def handle(self, *args, **options):
        with transaction.atomic():
            questions = _fix_labels(Question.objects.all())
            options_changed = _fix_labels(QuestionOption.objects.all())
            if options["dry_run"]:
                transaction.set_rollback(True)

        prefix = "Would capitalise" if options["dry_run"] else "Capitalised"
        self.stdout.write(f"{prefix} questions: {questions}")
        self.stdout.write(f"{prefix} options:   {options_changed}")
