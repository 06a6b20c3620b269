from datetime import timedelta

from django.contrib.auth.models import User
from django.test import TestCase
from django.utils import timezone

from survey.models import Profile, SellerProgress
from survey.services import assessment, platform, wizard
from survey.services.features import FeatureFlags
from survey.services.results import ErrorCode

from .factories import actor_for, answers, complete_assessment, make_user, seed_survey

UNLOCKED = FeatureFlags(lock_results_nav=False)


class CursorTest(TestCase):
    def test_round_trip(self) -> None:
        moment = timezone.now()
        cursor = platform.encode_cursor(moment, 42)
        self.assertNotIn('=', cursor)
        self.assertEqual(platform.decode_cursor(cursor), (moment, 42))

    def test_garbage_is_ignored(self) -> None:
        for raw in (None, '', 'not-base64!', 'e30', 'WzEsMl0'):
            with self.subTest(raw=raw):
                self.assertIsNone(platform.decode_cursor(raw))


class SellerFiltersTest(TestCase):
    def test_from_params(self) -> None:
        filters = platform.SellerFilters.from_params(
            {'q': ' shop ', 'fIndexDone': '1', 'fAssessSent': '0', 'fIndexVisible': 'x'}
        )
        self.assertEqual(filters.query, 'shop')
        self.assertTrue(filters.index_done)
        self.assertIs(filters.assessment_submitted, False)
        self.assertIsNone(filters.index_visible)
        self.assertEqual(
            filters.as_params(), {'q': 'shop', 'fIndexDone': '1', 'fAssessSent': '0'}
        )


class ListSellersTest(TestCase):
    def setUp(self) -> None:
        seed_survey(steps=1, questions_per_step=2)
        self.platform_user = make_user('ops@example.com', Profile.Role.PLATFORM)
        self.actor = actor_for(self.platform_user)

    def _seller(self, email: str, minutes_ago: int) -> User:
        seller = make_user(email)
        User.objects.filter(pk=seller.pk).update(
            last_login=timezone.now() - timedelta(minutes=minutes_ago)
        )
        return seller

    def test_only_sellers_most_recent_first(self) -> None:
        self._seller('old@example.com', 60)
        self._seller('new@example.com', 1)
        result = platform.list_sellers(self.actor)
        self.assertTrue(result.ok)
        self.assertEqual([row.email for row in result.data.rows], ['new@example.com', 'old@example.com'])
        self.assertIsNone(result.data.next_cursor)

    def test_rows_carry_progress_counts(self) -> None:
        seller = self._seller('seller@example.com', 5)
        wizard.save_step_answers(actor_for(seller), 'step-1', answers(('q1_1', '3')), UNLOCKED)
        assessment.save_assessment_draft(actor_for(seller), {'canais': 'Site', 'skus': 5})
        row = platform.list_sellers(self.actor).data.rows[0]
        self.assertEqual((row.index_answered, row.index_total), (1, 2))
        self.assertEqual((row.assessment_answered, row.assessment_total), (2, 16))
        self.assertEqual(row.assessment_status, 'draft')
        self.assertFalse(row.received_return)

    def test_keyset_pagination_visits_every_seller_once(self) -> None:
        for index in range(platform.PAGE_SIZE + 3):
            self._seller(f'seller{index}@example.com', index)
        first = platform.list_sellers(self.actor).data
        self.assertEqual(len(first.rows), platform.PAGE_SIZE)
        self.assertTrue(first.has_more)
        second = platform.list_sellers(self.actor, cursor=first.next_cursor).data
        self.assertEqual(len(second.rows), 3)
        self.assertFalse(second.has_more)
        emails = [row.email for row in first.rows + second.rows]
        self.assertEqual(len(set(emails)), platform.PAGE_SIZE + 3)

    def test_filters(self) -> None:
        done = self._seller('done@example.com', 1)
        stale = self._seller('stale@example.com', 60 * 24 * 40)
        submitted = self._seller('submitted@example.com', 2)
        SellerProgress.objects.create(seller=done, reached_results=True, last_step_order=8)
        assessment.submit_assessment(actor_for(submitted), complete_assessment())
        Profile.objects.filter(user=stale).update(show_index=False)

        def emails(**params):
            filters = platform.SellerFilters.from_params(params)
            return {row.email for row in platform.list_sellers(self.actor, filters).data.rows}

        self.assertEqual(emails(fIndexDone='1'), {'done@example.com'})
        self.assertEqual(emails(fStale30='1'), {'stale@example.com'})
        self.assertEqual(emails(fAssessSent='1'), {'submitted@example.com'})
        self.assertEqual(emails(fAssessSent='0'), {'done@example.com', 'stale@example.com'})
        self.assertEqual(emails(fIndexVisible='0'), {'stale@example.com'})
        self.assertEqual(emails(q='SUBMIT'), {'submitted@example.com'})

    def test_sellers_cannot_list(self) -> None:
        seller = make_user('seller@example.com')
        self.assertEqual(platform.list_sellers(actor_for(seller)).code, ErrorCode.FORBIDDEN)
        self.assertEqual(platform.list_sellers(None).code, ErrorCode.UNAUTHORIZED)


class SellerDetailAndTogglesTest(TestCase):
    def setUp(self) -> None:
        seed_survey(steps=2, questions_per_step=1)
        self.platform_user = make_user('ops@example.com', Profile.Role.PLATFORM)
        self.actor = actor_for(self.platform_user)
        self.seller = make_user('seller@example.com')
        wizard.save_step_answers(actor_for(self.seller), 'step-1', answers(('q1_1', '5')), UNLOCKED)

    def test_seller_results(self) -> None:
        result = platform.get_seller_results(self.actor, self.seller.pk)
        self.assertTrue(result.ok)
        data = result.data
        self.assertEqual(data['seller']['email'], 'seller@example.com')
        self.assertEqual(data['progress']['last_step_order'], 1)
        self.assertEqual([d.average_score for d in data['dimensions']], [5.0, 0.0])
        self.assertEqual(data['general_index'], 2.5)
        self.assertEqual(len(data['sections']), 2)
        self.assertIsNone(data['assessment'])
        self.assertEqual(data['assessment_total'], 16)

    def test_unknown_seller(self) -> None:
        self.assertEqual(platform.get_seller_results(self.actor, 999999).code, ErrorCode.NOT_FOUND)
        self.assertEqual(platform.get_seller_results(self.actor, 'abc').code, ErrorCode.INVALID_INPUT)

    def test_received_return_set_and_cleared(self) -> None:
        self.assertTrue(platform.set_received_return(self.actor, self.seller.pk, True).ok)
        progress = SellerProgress.objects.get(seller=self.seller)
        self.assertTrue(progress.received_return)
        self.assertEqual(progress.received_return_marked_by, self.platform_user)
        self.assertIsNotNone(progress.received_return_marked_at)

        self.assertTrue(platform.set_received_return(self.actor, self.seller.pk, False).ok)
        progress.refresh_from_db()
        self.assertFalse(progress.received_return)
        self.assertIsNone(progress.received_return_marked_by)
        self.assertIsNone(progress.received_return_marked_at)

    def test_received_return_creates_progress(self) -> None:
        other = make_user('fresh@example.com')
        self.assertTrue(platform.set_received_return(self.actor, other.pk, True).ok)
        self.assertTrue(SellerProgress.objects.get(seller=other).received_return)

    def test_card_visibility(self) -> None:
        self.assertTrue(
            platform.set_home_card_visibility(self.actor, self.seller.pk, platform.INDEX_CARD, False).ok
        )
        self.assertTrue(
            platform.set_home_card_visibility(self.actor, self.seller.pk, platform.ASSESSMENT_CARD, False).ok
        )
        profile = Profile.objects.get(user=self.seller)
        self.assertFalse(profile.show_index)
        self.assertFalse(profile.show_assessment)

    def test_card_visibility_rejects_unknown_cards(self) -> None:
        result = platform.set_home_card_visibility(self.actor, self.seller.pk, 3, True)
        self.assertEqual(result.code, ErrorCode.INVALID_INPUT)
        result = platform.set_home_card_visibility(self.actor, self.seller.pk, 1, 'yes')
        self.assertEqual(result.code, ErrorCode.INVALID_INPUT)

    def test_toggles_require_platform_role(self) -> None:
        seller_actor = actor_for(self.seller)
        self.assertEqual(
            platform.set_received_return(seller_actor, self.seller.pk, True).code, ErrorCode.FORBIDDEN
        )
        self.assertEqual(
            platform.set_home_card_visibility(seller_actor, self.seller.pk, 1, False).code,
            ErrorCode.FORBIDDEN,
        )
