from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from survey.models import Profile, Question, QuestionOption

from .factories import PASSWORD, make_question, make_user


class CheckCredentialsCommandTest(TestCase):
    def test_reports_matching_password(self) -> None:
        make_user('seller@example.com')
        out = StringIO()
        call_command('check_credentials', email='Seller@example.com', password=PASSWORD, stdout=out)
        output = out.getvalue()
        self.assertIn('found=True', output)
        self.assertIn('role=seller', output)
        self.assertIn('password_matches=True', output)

    def test_reports_wrong_password(self) -> None:
        make_user('seller@example.com')
        out = StringIO()
        call_command('check_credentials', email='seller@example.com', password='nope', stdout=out)
        self.assertIn('password_matches=False', out.getvalue())

    def test_unknown_user(self) -> None:
        out = StringIO()
        call_command('check_credentials', email='ghost@example.com', password='x', stdout=out)
        self.assertIn('User not found', out.getvalue())


class UpdateUserRoleCommandTest(TestCase):
    def test_promotes_a_seller(self) -> None:
        user = make_user('seller@example.com')
        call_command('update_user_role', email='seller@example.com', role='platform', stdout=StringIO())
        self.assertEqual(Profile.objects.get(user=user).role, Profile.Role.PLATFORM)

    def test_creates_a_missing_profile(self) -> None:
        user = make_user('seller@example.com')
        Profile.objects.filter(user=user).delete()
        call_command('update_user_role', email='seller@example.com', role='platform', stdout=StringIO())
        self.assertEqual(Profile.objects.get(user=user).role, Profile.Role.PLATFORM)

    def test_unknown_user(self) -> None:
        with self.assertRaises(CommandError):
            call_command('update_user_role', email='ghost@example.com', role='seller')

    def test_rejects_unknown_roles(self) -> None:
        make_user('seller@example.com')
        with self.assertRaises(CommandError):
            call_command('update_user_role', email='seller@example.com', role='admin')


class FixCapitalizationCommandTest(TestCase):
    def setUp(self) -> None:
        make_question('q1', label='how often do you ship?', values=('0', '5'))
        make_question('q2', label='Already fine', values=('0',))
        QuestionOption.objects.filter(question__key='q1', value='0').update(label='never')

    def test_capitalises_first_letter_only(self) -> None:
        out = StringIO()
        call_command('fix_capitalization', stdout=out)
        self.assertEqual(Question.objects.get(key='q1').label, 'How often do you ship?')
        self.assertEqual(Question.objects.get(key='q2').label, 'Already fine')
        self.assertEqual(QuestionOption.objects.get(question__key='q1', value='0').label, 'Never')
        self.assertIn('questions: 1', out.getvalue())
        self.assertIn('options:   1', out.getvalue())

    def test_dry_run_changes_nothing(self) -> None:
        call_command('fix_capitalization', dry_run=True, stdout=StringIO())
        self.assertEqual(Question.objects.get(key='q1').label, 'how often do you ship?')
