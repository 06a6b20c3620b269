from django.test import TestCase

from survey.models import Profile, QuestionOption, QuestionResponse, SellerProgress, SurveyStep
from survey.services import wizard
from survey.services.features import FeatureFlags
from survey.services.results import ErrorCode, SurveyActionError

from .factories import actor_for, answers, make_user, seed_survey

LOCKED = FeatureFlags(lock_results_nav=True)
UNLOCKED = FeatureFlags(lock_results_nav=False)


class ParseAnswersTest(TestCase):
    def test_last_answer_for_a_question_wins(self) -> None:
        parsed = wizard.parse_answers(answers(('q1', '1'), ('q2', '3'), ('q1', '5')))
        self.assertEqual(
            [(a.question_key, a.option_value) for a in parsed],
            [('q2', '3'), ('q1', '5')],
        )

    def test_integer_values_are_accepted(self) -> None:
        parsed = wizard.parse_answers([{'questionKey': 'q1', 'optionValue': 3}])
        self.assertEqual(parsed[0].option_value, '3')

    def test_rejects_values_outside_the_scale(self) -> None:
        for value in ('2', 'yes', True, None):
            with self.subTest(value=value):
                with self.assertRaises(SurveyActionError) as ctx:
                    wizard.parse_answers([{'questionKey': 'q1', 'optionValue': value}])
                self.assertEqual(ctx.exception.code, ErrorCode.INVALID_INPUT)

    def test_rejects_empty_answers(self) -> None:
        for raw in ([], None, 'q1=3'):
            with self.subTest(raw=raw):
                with self.assertRaises(SurveyActionError):
                    wizard.parse_answers(raw)


class SaveStepAnswersTest(TestCase):
    def setUp(self) -> None:
        self.steps = seed_survey(steps=2, questions_per_step=2)
        self.seller = make_user('seller@example.com')
        self.actor = actor_for(self.seller)

    def test_saves_answers_and_advances_progress(self) -> None:
        result = wizard.save_step_answers(
            self.actor, 'step-1', answers(('q1_1', '3'), ('q1_2', '5')), LOCKED
        )
        self.assertTrue(result.ok)
        self.assertEqual(result.data, {'step_key': 'step-1', 'saved': 2, 'last_step_order': 1})
        self.assertEqual(QuestionResponse.objects.filter(seller=self.seller).count(), 2)
        progress = SellerProgress.objects.get(seller=self.seller)
        self.assertEqual(progress.last_step_id, self.steps[0].pk)

    def test_resaving_overwrites_the_previous_answer(self) -> None:
        wizard.save_step_answers(self.actor, 'step-1', answers(('q1_1', '3')), LOCKED)
        wizard.save_step_answers(self.actor, 'step-1', answers(('q1_1', '1')), LOCKED)
        responses = QuestionResponse.objects.filter(seller=self.seller)
        self.assertEqual(responses.count(), 1)
        self.assertEqual(responses.get().option.value, '1')

    def test_last_step_order_never_decreases(self) -> None:
        wizard.save_step_answers(self.actor, 'step-2', answers(('q2_1', '3')), LOCKED)
        result = wizard.save_step_answers(self.actor, 'step-1', answers(('q1_1', '3')), LOCKED)
        self.assertEqual(result.data['last_step_order'], 2)
        self.assertEqual(SellerProgress.objects.get(seller=self.seller).last_step_order, 2)

    def test_question_from_another_step_is_rejected_atomically(self) -> None:
        result = wizard.save_step_answers(
            self.actor, 'step-1', answers(('q1_1', '3'), ('q2_1', '5')), LOCKED
        )
        self.assertFalse(result.ok)
        self.assertEqual(result.code, ErrorCode.QUESTION_NOT_IN_STEP)
        self.assertIn('q2_1', result.message)
        self.assertFalse(QuestionResponse.objects.exists())
        self.assertFalse(SellerProgress.objects.exists())

    def test_missing_option_is_reported(self) -> None:
        QuestionOption.objects.filter(question__key='q1_1', value='5').delete()
        result = wizard.save_step_answers(self.actor, 'step-1', answers(('q1_1', '5')), LOCKED)
        self.assertEqual(result.code, ErrorCode.OPTION_NOT_FOUND)

    def test_unknown_or_inactive_step(self) -> None:
        SurveyStep.objects.filter(key='step-2').update(is_active=False)
        for key in ('step-2', 'missing'):
            with self.subTest(key=key):
                result = wizard.save_step_answers(self.actor, key, answers(('q2_1', '3')), LOCKED)
                self.assertEqual(result.code, ErrorCode.STEP_NOT_FOUND)

    def test_invalid_input(self) -> None:
        result = wizard.save_step_answers(self.actor, 'step-1', [], LOCKED)
        self.assertEqual(result.code, ErrorCode.INVALID_INPUT)
        result = wizard.save_step_answers(self.actor, '', answers(('q1_1', '3')), LOCKED)
        self.assertEqual(result.code, ErrorCode.INVALID_INPUT)

    def test_requires_a_seller(self) -> None:
        platform = actor_for(make_user('ops@example.com', Profile.Role.PLATFORM))
        self.assertEqual(
            wizard.save_step_answers(platform, 'step-1', answers(('q1_1', '3')), LOCKED).code,
            ErrorCode.FORBIDDEN,
        )
        self.assertEqual(
            wizard.save_step_answers(None, 'step-1', answers(('q1_1', '3')), LOCKED).code,
            ErrorCode.UNAUTHORIZED,
        )

    def test_saving_is_refused_after_the_results_were_reached(self) -> None:
        wizard.save_step_answers(self.actor, 'step-1', answers(('q1_1', '3')), LOCKED)
        self.assertTrue(wizard.mark_reached_results(self.actor, LOCKED).ok)
        result = wizard.save_step_answers(self.actor, 'step-1', answers(('q1_1', '5')), LOCKED)
        self.assertEqual(result.code, ErrorCode.SURVEY_COMPLETED)
        self.assertEqual(QuestionResponse.objects.get(seller=self.seller).option.value, '3')

    def test_lock_disabled_keeps_the_wizard_open(self) -> None:
        wizard.mark_reached_results(self.actor, UNLOCKED)
        self.assertFalse(SellerProgress.objects.filter(seller=self.seller).exists())
        SellerProgress.objects.create(seller=self.seller, reached_results=True, last_step_order=8)
        result = wizard.save_step_answers(self.actor, 'step-1', answers(('q1_1', '5')), UNLOCKED)
        self.assertTrue(result.ok)


class GetStepWithQuestionsTest(TestCase):
    def setUp(self) -> None:
        seed_survey(steps=1, questions_per_step=2)
        self.seller = make_user('seller@example.com')
        self.actor = actor_for(self.seller)

    def test_returns_ordered_questions_with_selection(self) -> None:
        wizard.save_step_answers(self.actor, 'step-1', answers(('q1_2', '1')), LOCKED)
        result = wizard.get_step_with_questions(self.actor, 'step-1', LOCKED)
        self.assertTrue(result.ok)
        self.assertEqual(result.data['step'], {'key': 'step-1', 'title': 'Step 1', 'order': 1})
        questions = result.data['questions']
        self.assertEqual([q['key'] for q in questions], ['q1_1', 'q1_2'])
        self.assertEqual([o['value'] for o in questions[0]['options']], ['0', '1', '3', '5'])
        self.assertIsNone(questions[0]['selected'])
        self.assertEqual(questions[1]['selected'], '1')

    def test_locked_after_results(self) -> None:
        SellerProgress.objects.create(seller=self.seller, last_step_order=8)
        result = wizard.get_step_with_questions(self.actor, 'step-1', LOCKED)
        self.assertEqual(result.code, ErrorCode.SURVEY_COMPLETED)


class MarkReachedResultsTest(TestCase):
    def setUp(self) -> None:
        self.seller = make_user('seller@example.com')
        self.actor = actor_for(self.seller)

    def test_keeps_the_first_timestamp(self) -> None:
        wizard.mark_reached_results(self.actor, LOCKED)
        first = SellerProgress.objects.get(seller=self.seller).reached_results_at
        wizard.mark_reached_results(self.actor, LOCKED)
        progress = SellerProgress.objects.get(seller=self.seller)
        self.assertTrue(progress.reached_results)
        self.assertEqual(progress.reached_results_at, first)
        self.assertEqual(progress.last_step_order, 8)

    def test_platform_users_are_refused(self) -> None:
        platform = actor_for(make_user('ops@example.com', Profile.Role.PLATFORM))
        self.assertEqual(wizard.mark_reached_results(platform, LOCKED).code, ErrorCode.FORBIDDEN)


class ListActiveStepsTest(TestCase):
    def test_skips_inactive_and_empty_steps(self) -> None:
        seed_survey(steps=3, questions_per_step=1)
        SurveyStep.objects.filter(key='step-2').update(is_active=False)
        SurveyStep.objects.create(key='empty', title='Empty', order=4)
        self.assertEqual([s['key'] for s in wizard.list_active_steps()], ['step-1', 'step-3'])
