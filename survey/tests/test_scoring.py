from django.test import TestCase

from survey.models import Profile, StepQuestion, SurveyStep
from survey.services import scoring, wizard
from survey.services.features import FeatureFlags
from survey.services.results import ErrorCode
from survey.templatetags.survey_tags import score_display

from .factories import actor_for, answers, make_question, make_user, seed_survey

UNLOCKED = FeatureFlags(lock_results_nav=False)


class RoundHalfUpTest(TestCase):
    def test_rounds_the_binary_value_half_up(self) -> None:
        self.assertEqual(scoring.round_half_up(0.125, 2), 0.13)
        self.assertEqual(scoring.round_half_up(1.25, 1), 1.3)
        # 2.675 is stored as 2.67499999... so it rounds down.
        self.assertEqual(scoring.round_half_up(2.675, 2), 2.67)
        self.assertEqual(scoring.round_half_up(10 / 3, 2), 3.33)


class DimensionScoresTest(TestCase):
    def setUp(self) -> None:
        seed_survey(steps=2, questions_per_step=2)
        self.seller = make_user('seller@example.com')
        self.actor = actor_for(self.seller)
        wizard.save_step_answers(self.actor, 'step-1', answers(('q1_1', '3'), ('q1_2', '5')), UNLOCKED)
        wizard.save_step_answers(self.actor, 'step-2', answers(('q2_1', '1')), UNLOCKED)

    def test_averages_only_answered_questions(self) -> None:
        dimensions = scoring.compute_dimensions(self.seller.pk)
        self.assertEqual([d.key for d in dimensions], ['step-1', 'step-2'])
        self.assertEqual(dimensions[0].average_score, 4.0)
        self.assertEqual(dimensions[1].average_score, 1.0)
        self.assertEqual(dimensions[1].answered_count, 1)
        self.assertEqual(dimensions[1].question_count, 2)
        self.assertEqual(dimensions[0].max_score, 5)

    def test_general_index_is_the_unweighted_mean(self) -> None:
        dimensions = scoring.compute_dimensions(self.seller.pk)
        self.assertEqual(scoring.general_index(dimensions), 2.5)
        self.assertIsNone(scoring.general_index([]))

    def test_unanswered_step_scores_zero(self) -> None:
        other = make_user('other@example.com')
        dimensions = scoring.compute_dimensions(other.pk)
        self.assertEqual([d.average_score for d in dimensions], [0.0, 0.0])
        self.assertEqual(scoring.general_index(dimensions), 0.0)

    def test_inactive_steps_are_not_dimensions(self) -> None:
        SurveyStep.objects.filter(key='step-2').update(is_active=False)
        dimensions = scoring.compute_dimensions(self.seller.pk)
        self.assertEqual([d.key for d in dimensions], ['step-1'])

    def test_sections_list_every_question(self) -> None:
        _, sections = scoring.build_report(self.seller.pk)
        second = sections[1]
        self.assertEqual(second.subtotal, 1)
        self.assertEqual(second.max_subtotal, 10)
        self.assertEqual(second.items[1].answer, scoring.EMPTY_ANSWER)
        self.assertEqual(second.items[1].score, 0)
        self.assertEqual(second.items[0].answer, 'Partially')

    def test_index_progress(self) -> None:
        self.assertEqual(scoring.index_progress(self.seller.pk), {'answered': 3, 'total': 4})

    def test_results_by_dimension_for_the_seller(self) -> None:
        result = scoring.get_results_by_dimension(self.actor)
        self.assertTrue(result.ok)
        self.assertEqual(result.data['general_index'], 2.5)
        self.assertEqual(result.data['dimensions'][0]['title'], 'Step 1')

    def test_results_by_dimension_requires_a_seller(self) -> None:
        platform = actor_for(make_user('ops@example.com', Profile.Role.PLATFORM))
        self.assertEqual(scoring.get_results_by_dimension(platform).code, ErrorCode.FORBIDDEN)
        self.assertEqual(scoring.get_results_by_dimension(None).code, ErrorCode.UNAUTHORIZED)


class UnequalStepSizesTest(TestCase):
    def setUp(self) -> None:
        big, small = seed_survey(steps=2, questions_per_step=1)
        for number in (2, 3):
            question = make_question(f'q1_{number}')
            StepQuestion.objects.create(step=big, question=question, order=number)
        self.seller = make_user('seller@example.com')
        actor = actor_for(self.seller)
        wizard.save_step_answers(actor, 'step-1', answers(('q1_1', '1'), ('q1_2', '5')), UNLOCKED)
        wizard.save_step_answers(actor, 'step-2', answers(('q2_1', '5')), UNLOCKED)

    def test_general_index_ignores_question_counts(self) -> None:
        dimensions = scoring.compute_dimensions(self.seller.pk)
        self.assertEqual([d.question_count for d in dimensions], [3, 1])
        self.assertEqual([d.average_score for d in dimensions], [3.0, 5.0])
        # The mean of all three answers would be 3.67.
        self.assertEqual(scoring.general_index(dimensions), 4.0)


class ScoreDisplayTest(TestCase):
    def test_one_decimal_rounded_half_up(self) -> None:
        self.assertEqual(score_display(2.25), '2.3')
        self.assertEqual(score_display(3.33), '3.3')
        self.assertEqual(score_display(4.0), '4')
        self.assertEqual(score_display(None), scoring.EMPTY_ANSWER)
