"""
Tests for payload matching and the ConditionEvaluator.

Covers:
- Loose equality between event payload values and task conditions
- Task.matches_payload
- mission_completion, tasks_completion, date, date_range and custom conditions
- Fail-closed behaviour for unknown types and malformed payloads
"""
from datetime import datetime
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from gamification.models import LOCKER_CONDITION_TYPES, RULE_CONDITION_TYPES, loosely_equal
from gamification.services.conditions import ConditionEvaluator

STORE_ID = 42
NOW = datetime(2026, 6, 15, 12, 0, 0)


@pytest.fixture
def evaluator(app):
    return ConditionEvaluator(clock=lambda: NOW)


class TestLooselyEqual:
    """Tests for loosely_equal."""

    @pytest.mark.parametrize('actual, expected', [
        ('1000', 1000),
        (1000, '1000'),
        (1000.0, 1000),
        ('abc', 'abc'),
        (True, 'true'),
        (True, '1'),
        (True, 1),
        (False, 'false'),
        (False, 0),
        ('yes', True),
    ])
    def test_equal_values(self, actual, expected):
        assert loosely_equal(actual, expected) is True

    @pytest.mark.parametrize('actual, expected', [
        (500, 1000),
        ('500', 1000),
        (True, 'false'),
        (False, 1),
        (True, 'maybe'),
        ('abc', 'ABC'),
        ([1], 1),
        ('sNaN', 1000),
        ('NaN', 1000),
        ('Infinity', 1000),
        (1000, '-Infinity'),
        (True, 'sNaN'),
        (Decimal('sNaN'), 1000),
    ])
    def test_unequal_values(self, actual, expected):
        assert loosely_equal(actual, expected) is False


class TestTaskMatchesPayload:
    """Tests for Task.matches_payload."""

    def test_no_conditions_matches_anything(self, catalog):
        task = catalog.task(conditions=None)
        assert task.matches_payload({}) is True
        assert task.matches_payload({'anything': 1}) is True
        assert task.matches_payload(None) is True

    def test_empty_conditions_match(self, catalog):
        task = catalog.task(conditions={})
        assert task.matches_payload({'x': 1}) is True

    def test_all_keys_must_match(self, catalog):
        task = catalog.task(conditions={'total_amount': 1000, 'currency': 'SAR'})
        assert task.matches_payload({'total_amount': '1000', 'currency': 'SAR', 'extra': True}) is True
        assert task.matches_payload({'total_amount': 500, 'currency': 'SAR'}) is False

    def test_missing_key_does_not_match(self, catalog):
        task = catalog.task(conditions={'is_first_product': True})
        assert task.matches_payload({}) is False
        assert task.matches_payload({'is_first_product': None}) is False

    def test_boolean_condition_against_string_payload(self, catalog):
        task = catalog.task(conditions={'is_first_order': True})
        assert task.matches_payload({'is_first_order': 'true'}) is True
        assert task.matches_payload({'is_first_order': 'false'}) is False


class TestMissionCompletionCondition:
    """Tests for mission_completion conditions."""

    def test_true_when_store_completed_mission(self, evaluator, catalog, ledger_rows):
        mission = catalog.mission()
        ledger_rows.complete_mission(STORE_ID, mission)

        assert evaluator.evaluate('mission_completion', {'mission_id': mission.id}, STORE_ID) is True

    def test_false_for_other_store(self, evaluator, catalog, ledger_rows):
        mission = catalog.mission()
        ledger_rows.complete_mission(STORE_ID, mission)

        assert evaluator.evaluate('mission_completion', {'mission_id': mission.id}, 7) is False

    def test_false_when_in_progress(self, evaluator, catalog, ledger_rows):
        mission = catalog.mission()
        ledger_rows.progress(STORE_ID, mission, 'in_progress', '50.00')

        assert evaluator.evaluate('mission_completion', {'mission_id': mission.id}, STORE_ID) is False

    def test_accepts_mission_key(self, evaluator, catalog, ledger_rows):
        mission = catalog.mission(key='store-setup')
        ledger_rows.complete_mission(STORE_ID, mission)

        assert evaluator.evaluate('mission_completion', {'mission_id': 'store-setup'}, STORE_ID) is True
        assert evaluator.evaluate('mission_completion', {'mission_id': str(mission.id)}, STORE_ID) is True

    @pytest.mark.parametrize('payload', [
        {},
        {'mission_id': None},
        {'mission_id': True},
        {'mission_id': 'unknown'},
        {'mission_id': '99999999999999999999999'},
        {'mission_id': 2 ** 63},
        {'mission_id': -1},
    ])
    def test_malformed_payload_is_false(self, evaluator, payload):
        assert evaluator.evaluate('mission_completion', payload, STORE_ID) is False


class TestTasksCompletionCondition:
    """Tests for tasks_completion conditions."""

    def test_all_tasks_required_by_default(self, evaluator, catalog, ledger_rows):
        t1, t2 = catalog.task(), catalog.task()
        mission = catalog.mission(tasks=[t1, t2])
        ledger_rows.complete_task(STORE_ID, t1, mission)

        payload = {'task_ids': [t1.id, t2.id]}
        assert evaluator.evaluate('tasks_completion', payload, STORE_ID) is False

        ledger_rows.complete_task(STORE_ID, t2, mission)
        assert evaluator.evaluate('tasks_completion', payload, STORE_ID) is True

    def test_required_count(self, evaluator, catalog, ledger_rows):
        t1, t2, t3 = catalog.task(), catalog.task(), catalog.task()
        mission = catalog.mission(tasks=[t1, t2, t3])
        ledger_rows.complete_task(STORE_ID, t2, mission)

        payload = {'task_ids': [t1.id, t2.id, t3.id], 'required_count': 1}
        assert evaluator.evaluate('tasks_completion', payload, STORE_ID) is True

    def test_task_completed_in_two_missions_counts_once(self, evaluator, catalog, ledger_rows):
        t1, t2 = catalog.task(), catalog.task()
        m1 = catalog.mission(tasks=[t1, t2])
        m2 = catalog.mission(tasks=[t1])
        ledger_rows.complete_task(STORE_ID, t1, m1)
        ledger_rows.complete_task(STORE_ID, t1, m2)

        payload = {'task_ids': [t1.id, t2.id], 'required_count': 2}
        assert evaluator.evaluate('tasks_completion', payload, STORE_ID) is False

    def test_empty_task_list_is_true(self, evaluator):
        assert evaluator.evaluate('tasks_completion', {'task_ids': []}, STORE_ID) is True

    @pytest.mark.parametrize('payload', [
        {},
        {'task_ids': 'abc'},
        {'task_ids': ['x']},
        {'task_ids': [1], 'required_count': 'many'},
        {'task_ids': ['99999999999999999999999']},
    ])
    def test_malformed_payload_is_false(self, evaluator, payload):
        assert evaluator.evaluate('tasks_completion', payload, STORE_ID) is False


class TestDateConditions:
    """Tests for date and date_range conditions."""

    def test_date_unlocks_at_and_after_the_date(self, evaluator):
        assert evaluator.evaluate('date', {'unlock_date': '2026-06-15T12:00:00'}, STORE_ID) is True
        assert evaluator.evaluate('date', {'unlock_date': '2026-01-01'}, STORE_ID) is True
        assert evaluator.evaluate('date', {'unlock_date': '2026-06-15T12:00:01'}, STORE_ID) is False

    def test_date_with_timezone_is_normalized_to_utc(self, evaluator):
        # 14:00 at +03:00 is 11:00 UTC
        assert evaluator.evaluate('date', {'unlock_date': '2026-06-15T14:00:00+03:00'}, STORE_ID) is True
        assert evaluator.evaluate('date', {'unlock_date': '2026-06-15T12:30:00Z'}, STORE_ID) is False

    def test_date_range_is_inclusive(self, evaluator):
        payload = {'start_date': '2026-06-15T12:00:00', 'end_date': '2026-06-15T12:00:00'}
        assert evaluator.evaluate('date_range', payload, STORE_ID) is True

    def test_date_range_outside(self, evaluator):
        payload = {'start_date': '2026-07-01', 'end_date': '2026-07-31'}
        assert evaluator.evaluate('date_range', payload, STORE_ID) is False

    @pytest.mark.parametrize('condition_type, payload', [
        ('date', {}),
        ('date', {'unlock_date': 'not a date'}),
        ('date', {'unlock_date': None}),
        ('date_range', {'start_date': '2026-01-01'}),
        ('date_range', {'start_date': '2026-01-01', 'end_date': 12}),
    ])
    def test_malformed_dates_are_false(self, evaluator, condition_type, payload):
        assert evaluator.evaluate(condition_type, payload, STORE_ID) is False


class TestCustomConditions:
    """Tests for custom condition handlers."""

    def test_registered_handler_receives_store_and_payload(self, evaluator):
        calls = []

        def has_plan(store_id, payload):
            calls.append((store_id, payload['plan']))
            return payload['plan'] == 'pro'

        evaluator.register_custom('has_plan', has_plan)

        assert evaluator.evaluate('custom', {'handler': 'has_plan', 'plan': 'pro'}, STORE_ID) is True
        assert calls == [(STORE_ID, 'pro')]

    def test_unregistered_handler_is_false(self, evaluator):
        assert evaluator.evaluate('custom', {'handler': 'nope'}, STORE_ID) is False
        assert evaluator.evaluate('custom', {}, STORE_ID) is False

    def test_raising_handler_is_false(self, evaluator):
        def broken(store_id, payload):
            raise RuntimeError('boom')

        evaluator.register_custom('broken', broken)
        assert evaluator.evaluate('custom', {'handler': 'broken'}, STORE_ID) is False


class TestFailClosed:
    """Tests for unknown and disallowed condition types."""

    def test_unknown_type_is_false(self, evaluator):
        assert evaluator.evaluate('moon_phase', {}, STORE_ID) is False

    def test_non_object_payload_is_false(self, evaluator):
        assert evaluator.evaluate('date', ['2020-01-01'], STORE_ID) is False

    def test_lockers_do_not_accept_date_range(self, evaluator):
        payload = {'start_date': '2026-01-01', 'end_date': '2026-12-31'}
        assert evaluator.evaluate('date_range', payload, STORE_ID) is True
        assert evaluator.evaluate('date_range', payload, STORE_ID, allowed=LOCKER_CONDITION_TYPES) is False

    def test_rules_do_not_accept_date(self, evaluator):
        payload = {'unlock_date': '2026-01-01'}
        assert evaluator.evaluate('date', payload, STORE_ID, allowed=RULE_CONDITION_TYPES) is False

    def test_database_error_is_false_and_session_stays_usable(self, evaluator, catalog):
        def failing(store_id, payload):
            raise OperationalError('SELECT', {}, Exception('value out of range for type integer'))

        with patch.dict(evaluator._dispatch, {'mission_completion': failing}):
            assert evaluator.evaluate('mission_completion', {'mission_id': 1}, STORE_ID) is False

        mission = catalog.mission()
        assert evaluator.evaluate('mission_completion', {'mission_id': mission.id}, STORE_ID) is False
