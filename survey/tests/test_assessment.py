from django.test import TestCase

from survey.models import Profile, SellerAssessment
from survey.services import assessment
from survey.services.results import ErrorCode

from .factories import actor_for, complete_assessment, make_user


class ChecklistTest(TestCase):
    def test_complete_document_passes(self) -> None:
        document = complete_assessment()
        self.assertIsNone(assessment.validate_assessment(document))
        self.assertEqual(assessment.count_answered_items(document), assessment.CHECKLIST_TOTAL)
        self.assertEqual(assessment.CHECKLIST_TOTAL, 16)

    def test_reports_the_first_failing_item(self) -> None:
        document = complete_assessment()
        document['solution'] = 'other'
        document['skus'] = None
        self.assertEqual(assessment.validate_assessment(document), 'Select a solution')

    def test_region_message_names_the_first_failing_region(self) -> None:
        document = complete_assessment()
        document['vendaPorRegiao']['norte'] = -1
        document['vendaPorRegiao']['centroOeste'] = None
        self.assertEqual(
            assessment.validate_assessment(document),
            'Fill in the sales for the region: norte',
        )
        self.assertEqual(assessment.count_answered_items(document), assessment.CHECKLIST_TOTAL - 1)

    def test_items_per_order_must_be_positive(self) -> None:
        document = complete_assessment()
        document['itensPorPedido'] = 0
        self.assertEqual(
            assessment.validate_assessment(document),
            'Enter the average number of items per order',
        )

    def test_reverse_logistics_is_a_percentage(self) -> None:
        document = complete_assessment()
        document['reversaPercent'] = 101
        self.assertEqual(
            assessment.validate_assessment(document),
            'Enter the reverse logistics percentage (0-100)',
        )

    def test_booleans_and_blank_text_do_not_count(self) -> None:
        document = complete_assessment()
        document['skus'] = True
        document['canais'] = '   '
        self.assertEqual(assessment.count_answered_items(document), 14)

    def test_fiscal_model_needs_one_flag(self) -> None:
        document = complete_assessment()
        document['modeloFiscal'] = {'compraEVenda': False}
        self.assertEqual(assessment.validate_assessment(document), 'Select at least one fiscal model')

    def test_missing_document_counts_zero(self) -> None:
        self.assertEqual(assessment.count_answered_items(None), 0)
        self.assertEqual(assessment.count_answered_items({}), 0)


class AssessmentWorkflowTest(TestCase):
    def setUp(self) -> None:
        self.seller = make_user('seller@example.com')
        self.actor = actor_for(self.seller)

    def test_get_without_assessment(self) -> None:
        result = assessment.get_assessment(self.actor)
        self.assertTrue(result.ok)
        self.assertIsNone(result.data)

    def test_draft_is_replaced_on_each_save(self) -> None:
        self.assertTrue(assessment.save_assessment_draft(self.actor, {'canais': 'Site'}).ok)
        self.assertTrue(assessment.save_assessment_draft(self.actor, {'skus': 10}).ok)
        stored = SellerAssessment.objects.get(seller=self.seller)
        self.assertEqual(stored.status, SellerAssessment.Status.DRAFT)
        self.assertEqual(stored.data, {'skus': 10})
        self.assertIsNone(stored.submitted_at)

    def test_draft_requires_a_mapping(self) -> None:
        result = assessment.save_assessment_draft(self.actor, ['not', 'a', 'mapping'])
        self.assertEqual(result.code, ErrorCode.INVALID_INPUT)

    def test_incomplete_submission_is_rejected_and_nothing_changes(self) -> None:
        assessment.save_assessment_draft(self.actor, {'canais': 'Site'})
        result = assessment.submit_assessment(self.actor, {'solution': 'unlock_response'})
        self.assertEqual(result.code, ErrorCode.VALIDATION_ERROR)
        self.assertEqual(result.message, 'Fill in the sales for the region: sul')
        stored = SellerAssessment.objects.get(seller=self.seller)
        self.assertEqual(stored.status, SellerAssessment.Status.DRAFT)
        self.assertEqual(stored.data, {'canais': 'Site'})

    def test_submission_freezes_the_document(self) -> None:
        result = assessment.submit_assessment(self.actor, complete_assessment())
        self.assertTrue(result.ok)
        stored = SellerAssessment.objects.get(seller=self.seller)
        self.assertEqual(stored.status, SellerAssessment.Status.SUBMITTED)
        self.assertIsNotNone(stored.submitted_at)

        draft = assessment.save_assessment_draft(self.actor, {'canais': 'Changed'})
        self.assertEqual(draft.code, ErrorCode.ALREADY_SUBMITTED)
        again = assessment.submit_assessment(self.actor, {})
        self.assertEqual(again.code, ErrorCode.ALREADY_SUBMITTED)
        stored.refresh_from_db()
        self.assertEqual(stored.data['canais'], 'Site, marketplaces')

        fetched = assessment.get_assessment(self.actor).data
        self.assertEqual(fetched['status'], 'submitted')
        self.assertEqual(fetched['submitted_at'], stored.submitted_at)

    def test_platform_users_cannot_use_the_seller_assessment(self) -> None:
        platform = actor_for(make_user('ops@example.com', Profile.Role.PLATFORM))
        self.assertEqual(assessment.get_assessment(platform).code, ErrorCode.FORBIDDEN)
        self.assertEqual(
            assessment.submit_assessment(platform, complete_assessment()).code,
            ErrorCode.FORBIDDEN,
        )
        self.assertEqual(assessment.save_assessment_draft(None, {}).code, ErrorCode.UNAUTHORIZED)
