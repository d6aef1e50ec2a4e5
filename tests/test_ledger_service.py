"""
Tests for the completion ledger.

Covers fetch-or-create idempotence (including the concurrent-insert
recovery path), the percentage law and the StoreProgress state machine.
"""
from datetime import datetime
from decimal import Decimal
from unittest.mock import patch

import pytest

from gamification.extensions import db
from gamification.models import TaskCompletion, StoreProgress, MissionTask
from gamification.services import ledger_service
from gamification.services.ledger_service import LedgerService, calculate_percentage, get_or_create

STORE_ID = 42


@pytest.fixture
def ledger(app):
    return LedgerService()


class TestCalculatePercentage:
    """Tests for calculate_percentage."""

    @pytest.mark.parametrize('completed, total, expected', [
        (0, 3, Decimal('0.00')),
        (1, 3, Decimal('33.33')),
        (2, 3, Decimal('66.67')),
        (3, 3, Decimal('100.00')),
        (1, 8, Decimal('12.50')),
        (0, 0, Decimal('0.00')),
    ])
    def test_percentage_law(self, completed, total, expected):
        assert calculate_percentage(completed, total) == expected

    def test_capped_at_one_hundred(self):
        assert calculate_percentage(5, 3) == Decimal('100.00')


class TestGetOrCreate:
    """Tests for the fetch-or-create helper."""

    def test_creates_once(self, ledger, catalog):
        task = catalog.task()
        mission = catalog.mission(tasks=[task])

        first = ledger.get_or_create_task_completion(STORE_ID, task.id, mission.id)
        db.session.commit()
        second = ledger.get_or_create_task_completion(STORE_ID, task.id, mission.id)

        assert first.id == second.id
        assert first.status == 'not_started'
        assert TaskCompletion.query.count() == 1

    def test_reports_created_flag(self, app, catalog):
        mission = catalog.mission()

        _, created = get_or_create(StoreProgress, store_id=STORE_ID, mission_id=mission.id)
        _, created_again = get_or_create(StoreProgress, store_id=STORE_ID, mission_id=mission.id)

        assert created is True
        assert created_again is False

    def test_concurrent_insert_is_recovered(self, ledger, catalog):
        """A row inserted by another worker between lookup and insert is re-fetched."""
        mission = catalog.mission()
        existing = StoreProgress(store_id=STORE_ID, mission_id=mission.id, status='in_progress',
                                 progress_percentage=Decimal('50.00'))
        db.session.add(existing)
        db.session.commit()

        # First lookup misses (the other worker has not committed yet), the re-fetch finds it
        real_find = ledger_service._find
        calls = []

        def racing_find(model, lock=False, **keys):
            calls.append(keys)
            if len(calls) == 1:
                return None
            return real_find(model, lock=lock, **keys)

        with patch.object(ledger_service, '_find', side_effect=racing_find):
            progress = ledger.get_or_create_progress(STORE_ID, mission.id)

        assert progress.id == existing.id
        assert progress.status == 'in_progress'
        assert len(calls) == 2
        assert StoreProgress.query.filter_by(store_id=STORE_ID).count() == 1

    def test_integrity_error_without_row_propagates(self, ledger, catalog):
        from sqlalchemy.exc import IntegrityError

        mission = catalog.mission()
        db.session.add(StoreProgress(store_id=STORE_ID, mission_id=mission.id, status='not_started',
                                     progress_percentage=Decimal('0.00')))
        db.session.commit()

        with patch.object(ledger_service, '_find', return_value=None):
            with pytest.raises(IntegrityError):
                ledger.get_or_create_progress(STORE_ID, mission.id)


class TestTaskCompletionStateMachine:
    """Tests for TaskCompletion transitions."""

    def test_mark_completed_transitions_once(self, ledger, catalog):
        task = catalog.task()
        mission = catalog.mission(tasks=[task])
        completion = ledger.get_or_create_task_completion(STORE_ID, task.id, mission.id)

        assert completion.mark_completed() is True
        first_completed_at = completion.completed_at
        assert completion.mark_completed() is False
        assert completion.completed_at == first_completed_at
        assert completion.status == 'completed'

    def test_ignored_cannot_be_completed(self, ledger, catalog):
        task = catalog.task()
        mission = catalog.mission(tasks=[task])

        assert ledger.ignore_task(STORE_ID, task.id, mission.id) is True
        completion = ledger.get_task_completion(STORE_ID, task.id, mission.id)
        assert completion.mark_completed() is False
        assert completion.status == 'ignored'

    def test_completed_cannot_be_ignored(self, ledger, catalog):
        task = catalog.task()
        mission = catalog.mission(tasks=[task])
        ledger.get_or_create_task_completion(STORE_ID, task.id, mission.id).mark_completed()

        assert ledger.ignore_task(STORE_ID, task.id, mission.id) is False
        assert ledger.get_task_completion(STORE_ID, task.id, mission.id).status == 'completed'


class TestRecomputeProgress:
    """Tests for LedgerService.recompute_progress."""

    def test_partial_progress(self, ledger, catalog, ledger_rows):
        t1, t2, t3 = catalog.task(), catalog.task(), catalog.task()
        mission = catalog.mission(tasks=[t1, t2, t3])
        ledger_rows.complete_task(STORE_ID, t1, mission)

        progress = ledger.get_or_create_progress(STORE_ID, mission.id)
        just_completed = ledger.recompute_progress(progress, mission)

        assert just_completed is False
        assert progress.progress_percentage == Decimal('33.33')
        assert progress.status == 'in_progress'
        assert progress.completed_at is None

    def test_reaching_one_hundred_completes_once(self, ledger, catalog, ledger_rows):
        t1 = catalog.task()
        mission = catalog.mission(tasks=[t1])
        ledger_rows.complete_task(STORE_ID, t1, mission)
        now = datetime(2026, 3, 1, 9, 30)

        progress = ledger.get_or_create_progress(STORE_ID, mission.id)
        assert ledger.recompute_progress(progress, mission, now) is True
        assert progress.status == 'completed'
        assert progress.completed_at == now

        assert ledger.recompute_progress(progress, mission, datetime(2026, 4, 1)) is False
        assert progress.completed_at == now

    def test_zero_tasks_is_zero_and_not_advanced(self, ledger, catalog):
        mission = catalog.mission(tasks=[])
        progress = ledger.get_or_create_progress(STORE_ID, mission.id)

        assert ledger.recompute_progress(progress, mission) is False
        assert progress.progress_percentage == Decimal('0.00')
        assert progress.status == 'not_started'

    def test_completed_never_regresses_when_tasks_are_added(self, ledger, catalog, ledger_rows):
        t1 = catalog.task()
        mission = catalog.mission(tasks=[t1])
        ledger_rows.complete_task(STORE_ID, t1, mission)
        progress = ledger.get_or_create_progress(STORE_ID, mission.id)
        ledger.recompute_progress(progress, mission)
        db.session.commit()

        t2 = catalog.task()
        db.session.add(MissionTask(mission_id=mission.id, task_id=t2.id, sort_order=2))
        db.session.commit()

        assert ledger.recompute_progress(progress, mission) is False
        assert progress.status == 'completed'
        assert progress.progress_percentage == Decimal('50.00')

    def test_detached_task_completions_are_not_counted(self, ledger, catalog, ledger_rows):
        t1, t2 = catalog.task(), catalog.task()
        mission = catalog.mission(tasks=[t1, t2])
        ledger_rows.complete_task(STORE_ID, t1, mission)
        MissionTask.query.filter_by(mission_id=mission.id, task_id=t1.id).delete()
        db.session.commit()

        assert ledger.completed_task_count(STORE_ID, mission.id) == 0

    def test_ignored_progress_keeps_status(self, ledger, catalog, ledger_rows):
        t1 = catalog.task()
        mission = catalog.mission(tasks=[t1])
        progress = ledger_rows.progress(STORE_ID, mission, 'ignored')
        ledger_rows.complete_task(STORE_ID, t1, mission)

        assert ledger.recompute_progress(progress, mission) is False
        assert progress.status == 'ignored'


class TestIgnoreMission:
    """Tests for LedgerService.ignore_mission."""

    def test_ignore_creates_progress_row(self, ledger, catalog):
        mission = catalog.mission()

        assert ledger.ignore_mission(STORE_ID, mission.id) is True
        assert ledger.get_progress(STORE_ID, mission.id).status == 'ignored'

    def test_completed_mission_cannot_be_ignored(self, ledger, catalog, ledger_rows):
        mission = catalog.mission()
        ledger_rows.complete_mission(STORE_ID, mission)

        assert ledger.ignore_mission(STORE_ID, mission.id) is False
        assert ledger.get_progress(STORE_ID, mission.id).status == 'completed'
