"""
Tests for CatalogService.

Covers catalog CRUD, validation, task attachment and the idempotent
default catalog seed.
"""
from datetime import datetime

import pytest

from gamification.extensions import db
from gamification.models import Task, Mission, MissionTask, Locker, Reward, Badge
from gamification.services.catalog_defaults import DEFAULT_BADGES, DEFAULT_TASKS, DEFAULT_MISSIONS
from gamification.services.catalog_service import CatalogService
from gamification.utils.exceptions import (
    DuplicateError,
    MissionNotFoundError,
    NotFoundError,
    TaskNotFoundError,
    ValidationError,
)


@pytest.fixture
def service(app):
    return CatalogService()


class TestTasks:
    """Tests for task administration."""

    def test_create_task(self, service):
        task = service.create_task({
            'key': 'add-first-product',
            'name': 'Add Your First Product',
            'event_name': 'product_created',
            'points': 100,
            'event_payload_conditions': {'is_first_product': True},
        })

        assert task.id is not None
        assert task.is_active is True
        assert task.to_dict()['event_payload_conditions'] == {'is_first_product': True}

    def test_points_default_to_zero(self, service):
        task = service.create_task({'key': 't', 'name': 'T', 'event_name': 'e'})
        assert task.points == 0

    @pytest.mark.parametrize('data, field', [
        ({'name': 'T', 'event_name': 'e'}, 'key'),
        ({'key': 't', 'event_name': 'e'}, 'name'),
        ({'key': 't', 'name': '  ', 'event_name': 'e'}, 'name'),
        ({'key': 't', 'name': 'T'}, 'event_name'),
        ({'key': 't', 'name': 'T', 'event_name': 'e', 'points': -1}, 'points'),
        ({'key': 't', 'name': 'T', 'event_name': 'e', 'points': 'ten'}, 'points'),
        ({'key': 't', 'name': 'T', 'event_name': 'e', 'event_payload_conditions': [1]}, 'event_payload_conditions'),
    ])
    def test_invalid_task(self, service, data, field):
        with pytest.raises(ValidationError) as exc_info:
            service.create_task(data)
        assert exc_info.value.field == field

    def test_duplicate_key(self, service, catalog):
        catalog.task(key='taken')
        with pytest.raises(DuplicateError):
            service.create_task({'key': 'taken', 'name': 'T', 'event_name': 'e'})

    def test_update_task(self, service, catalog):
        task = catalog.task(points=10)

        updated = service.update_task(task.id, {'points': 25, 'is_active': False})

        assert updated.points == 25
        assert updated.is_active is False

    def test_get_missing_task(self, service):
        with pytest.raises(TaskNotFoundError):
            service.get_task(999)

    def test_delete_task_detaches_it(self, service, catalog):
        task = catalog.task()
        mission = catalog.mission(tasks=[task])

        service.delete_task(task.id)

        assert Task.query.count() == 0
        assert MissionTask.query.filter_by(mission_id=mission.id).count() == 0


class TestMissions:
    """Tests for mission administration."""

    def test_create_with_ordered_tasks(self, service, catalog):
        t1, t2 = catalog.task(), catalog.task()

        mission = service.create_mission({'key': 'm', 'name': 'M', 'tasks': [t2.id, t1.id]})

        assert [task.id for task in mission.tasks] == [t2.id, t1.id]
        assert mission.total_points == 0

    def test_create_with_explicit_sort_order(self, service, catalog):
        t1, t2 = catalog.task(), catalog.task()

        mission = service.create_mission({
            'key': 'm',
            'name': 'M',
            'tasks': [{'task_id': t1.id, 'sort_order': 5}, {'task_id': t2.id, 'sort_order': 1}],
        })

        assert [task.id for task in mission.tasks] == [t2.id, t1.id]

    def test_unknown_task_rejected(self, service):
        with pytest.raises(TaskNotFoundError):
            service.create_mission({'key': 'm', 'name': 'M', 'tasks': [999]})
        db.session.rollback()
        assert Mission.query.count() == 0

    def test_dates_parsed_and_window_validated(self, service):
        mission = service.create_mission({
            'key': 'ramadan',
            'name': 'Ramadan',
            'start_date': '2026-02-18T00:00:00Z',
            'end_date': '2026-03-20T00:00:00+00:00',
        })
        assert mission.start_date == datetime(2026, 2, 18)

        with pytest.raises(ValidationError):
            service.update_mission(mission.id, {'end_date': '2026-01-01'})

    def test_invalid_date(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.create_mission({'key': 'm', 'name': 'M', 'start_date': 'next tuesday'})
        assert exc_info.value.field == 'start_date'

    def test_update_replaces_tasks(self, service, catalog):
        t1, t2, t3 = catalog.task(), catalog.task(), catalog.task()
        mission = catalog.mission(tasks=[t1, t2])

        service.update_mission(mission.id, {'tasks': [t3.id, t1.id]})

        assert [task.id for task in service.get_mission(mission.id).tasks] == [t3.id, t1.id]

    def test_attach_and_detach(self, service, catalog):
        t1, t2 = catalog.task(), catalog.task()
        mission = catalog.mission(tasks=[t1])

        link = service.attach_task(mission.id, t2.id)
        assert link.sort_order == 2

        moved = service.attach_task(mission.id, t2.id, sort_order=0)
        assert moved.id == link.id
        assert [task.id for task in service.get_mission(mission.id).tasks] == [t2.id, t1.id]

        service.detach_task(mission.id, t1.id)
        assert [task.id for task in service.get_mission(mission.id).tasks] == [t2.id]

        with pytest.raises(NotFoundError):
            service.detach_task(mission.id, t1.id)

    def test_delete_mission_removes_children(self, service, catalog):
        mission = catalog.mission(tasks=[catalog.task()])
        catalog.locker(mission, 'date', {'unlock_date': '2026-01-01'})
        catalog.reward(mission, 'points', 10)

        service.delete_mission(mission.id)

        assert Mission.query.count() == 0
        assert Locker.query.count() == 0
        assert Reward.query.count() == 0
        assert Task.query.count() == 1

    def test_missing_mission(self, service):
        with pytest.raises(MissionNotFoundError):
            service.update_mission(404, {'name': 'x'})


class TestLockersRulesRewards:
    """Tests for mission lockers, rules and rewards."""

    def test_locker_type_validation(self, service, catalog):
        mission = catalog.mission()

        locker = service.create_locker(mission.id, {
            'condition_type': 'date',
            'condition_payload': {'unlock_date': '2026-01-01'},
        })
        assert locker.condition_payload == {'unlock_date': '2026-01-01'}

        with pytest.raises(ValidationError):
            service.create_locker(mission.id, {'condition_type': 'date_range'})

    def test_rule_type_validation(self, service, catalog):
        mission = catalog.mission()

        rule = service.create_rule(mission.id, {
            'rule_type': 'finish',
            'condition_type': 'tasks_completion',
            'condition_payload': {'task_ids': [1]},
        })
        assert rule.rule_type == 'finish'

        with pytest.raises(ValidationError):
            service.create_rule(mission.id, {'rule_type': 'middle', 'condition_type': 'custom'})
        with pytest.raises(ValidationError):
            service.create_rule(mission.id, {'rule_type': 'start', 'condition_type': 'date'})

    def test_update_locker_and_rule(self, service, catalog):
        mission = catalog.mission()
        locker = catalog.locker(mission, 'date', {'unlock_date': '2026-01-01'})
        rule = catalog.rule(mission, 'start', 'custom', {'handler': 'a'})

        locker = service.update_locker(locker.id, {'condition_payload': {'unlock_date': '2027-01-01'}})
        assert locker.condition_payload == {'unlock_date': '2027-01-01'}
        assert service.update_rule(rule.id, {'rule_type': 'finish'}).rule_type == 'finish'

        service.delete_locker(locker.id)
        service.delete_rule(rule.id)
        assert mission.lockers.count() == 0
        assert mission.rules.count() == 0

    def test_reward_stores_value_as_string(self, service, catalog):
        mission = catalog.mission()

        reward = service.create_reward(mission.id, {'reward_type': 'points', 'reward_value': 150})

        assert reward.reward_value == '150'

    @pytest.mark.parametrize('value', ['abc', '0', '-5'])
    def test_points_reward_must_be_positive_integer(self, service, catalog, value):
        mission = catalog.mission()
        with pytest.raises(ValidationError):
            service.create_reward(mission.id, {'reward_type': 'points', 'reward_value': value})

    def test_update_reward_revalidates(self, service, catalog):
        mission = catalog.mission()
        reward = catalog.reward(mission, 'badge', 'store-setup')

        with pytest.raises(ValidationError):
            service.update_reward(reward.id, {'reward_type': 'points'})

    def test_unknown_reward_type(self, service, catalog):
        mission = catalog.mission()
        with pytest.raises(ValidationError):
            service.create_reward(mission.id, {'reward_type': 'cash', 'reward_value': '10'})


class TestBadges:
    """Tests for badge administration."""

    def test_create_update_delete(self, service):
        badge = service.create_badge({'key': 'first-sale', 'name': 'First Sale'})
        assert badge.is_active is True

        service.update_badge(badge.id, {'name': 'First Sale!', 'is_active': False})
        assert service.get_badge(badge.id).name == 'First Sale!'
        assert service.list_badges(include_inactive=False) == []

        service.delete_badge(badge.id)
        assert Badge.query.count() == 0

    def test_duplicate_badge(self, service, catalog):
        catalog.badge('welcome')
        with pytest.raises(DuplicateError):
            service.create_badge({'key': 'welcome', 'name': 'Welcome'})


class TestInitializeDefaults:
    """Tests for the default onboarding catalog."""

    def test_seeds_catalog(self, service):
        counts = service.initialize_defaults()

        assert counts == {
            'badges_created': len(DEFAULT_BADGES),
            'tasks_created': len(DEFAULT_TASKS),
            'missions_created': len(DEFAULT_MISSIONS),
        }
        store_setup = Mission.query.filter_by(key='store-setup').one()
        products = Mission.query.filter_by(key='product-catalog').one()

        assert [task.key for task in store_setup.tasks] == ['update-store-logo', 'update-store-name', 'customize-theme']
        assert store_setup.lockers.count() == 0
        assert [locker.condition_payload for locker in products.lockers] == [{'mission_id': store_setup.id}]
        assert {(r.reward_type, r.reward_value) for r in store_setup.rewards} == {
            ('points', '150'),
            ('badge', 'store-setup'),
        }

    def test_idempotent(self, service):
        service.initialize_defaults()

        counts = service.initialize_defaults()

        assert counts == {'badges_created': 0, 'tasks_created': 0, 'missions_created': 0}
        assert Mission.query.count() == len(DEFAULT_MISSIONS)
        assert Locker.query.count() == len(DEFAULT_MISSIONS) - 1
        assert Reward.query.count() == sum(len(m['rewards']) for m in DEFAULT_MISSIONS)

    def test_keeps_existing_rows(self, service, catalog):
        catalog.task(key='update-store-logo', event_name='custom_logo_event', points=1)

        counts = service.initialize_defaults()

        assert counts['tasks_created'] == len(DEFAULT_TASKS) - 1
        assert Task.query.filter_by(key='update-store-logo').one().event_name == 'custom_logo_event'
