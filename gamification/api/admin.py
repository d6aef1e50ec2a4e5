"""
Admin API for the mission catalog.

CRUD for tasks, missions (with task attachment), lockers, rules, rewards
and badges. Guarded by the X-Admin-Token header.
"""

from flask import Blueprint, request, jsonify

from ..middleware.store_auth import require_admin_token
from ..services.catalog_service import CatalogService
from ..utils.errors import bad_request

admin_bp = Blueprint('gamification_admin', __name__)


def get_service() -> CatalogService:
    return CatalogService()


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return None
    return data


@admin_bp.before_request
@require_admin_token
def check_admin():
    """Applies the admin token check to every route of the blueprint."""
    return None


# Task Endpoints
@admin_bp.route('/tasks', methods=['GET'])
def list_tasks():
    tasks = get_service().list_tasks()
    return jsonify({'success': True, 'tasks': [t.to_dict() for t in tasks]})


@admin_bp.route('/tasks', methods=['POST'])
def create_task():
    data = _json_body()
    if data is None:
        return bad_request('No data provided')

    task = get_service().create_task(data)
    return jsonify({'success': True, 'task': task.to_dict()}), 201


@admin_bp.route('/tasks/<int:task_id>', methods=['GET'])
def get_task(task_id):
    task = get_service().get_task(task_id)
    data = task.to_dict()
    data['missions'] = [link.mission_id for link in task.mission_links]
    return jsonify({'success': True, 'task': data})


@admin_bp.route('/tasks/<int:task_id>', methods=['PUT'])
def update_task(task_id):
    data = _json_body()
    if data is None:
        return bad_request('No data provided')

    task = get_service().update_task(task_id, data)
    return jsonify({'success': True, 'task': task.to_dict()})


@admin_bp.route('/tasks/<int:task_id>', methods=['DELETE'])
def delete_task(task_id):
    get_service().delete_task(task_id)
    return jsonify({'success': True, 'message': 'Task deleted'})


# Mission Endpoints
@admin_bp.route('/missions', methods=['GET'])
def list_missions():
    missions = get_service().list_missions()
    return jsonify({'success': True, 'missions': [m.to_dict(include_tasks=True) for m in missions]})


@admin_bp.route('/missions', methods=['POST'])
def create_mission():
    data = _json_body()
    if data is None:
        return bad_request('No data provided')

    mission = get_service().create_mission(data)
    return jsonify({'success': True, 'mission': mission.to_dict(include_tasks=True)}), 201


@admin_bp.route('/missions/<int:mission_id>', methods=['GET'])
def get_mission(mission_id):
    mission = get_service().get_mission(mission_id)
    data = mission.to_dict(include_tasks=True)
    data['lockers'] = [locker.to_dict() for locker in mission.lockers]
    data['rules'] = [rule.to_dict() for rule in mission.rules]
    data['rewards'] = [reward.to_dict() for reward in mission.rewards]
    return jsonify({'success': True, 'mission': data})


@admin_bp.route('/missions/<int:mission_id>', methods=['PUT'])
def update_mission(mission_id):
    data = _json_body()
    if data is None:
        return bad_request('No data provided')

    mission = get_service().update_mission(mission_id, data)
    return jsonify({'success': True, 'mission': mission.to_dict(include_tasks=True)})


@admin_bp.route('/missions/<int:mission_id>', methods=['DELETE'])
def delete_mission(mission_id):
    get_service().delete_mission(mission_id)
    return jsonify({'success': True, 'message': 'Mission deleted'})


@admin_bp.route('/missions/<int:mission_id>/tasks/<int:task_id>', methods=['PUT'])
def attach_task(mission_id, task_id):
    data = request.get_json(silent=True) or {}
    link = get_service().attach_task(mission_id, task_id, data.get('sort_order'))
    return jsonify({'success': True, 'task': link.to_dict()})


@admin_bp.route('/missions/<int:mission_id>/tasks/<int:task_id>', methods=['DELETE'])
def detach_task(mission_id, task_id):
    get_service().detach_task(mission_id, task_id)
    return jsonify({'success': True, 'message': 'Task detached'})


# Locker Endpoints
@admin_bp.route('/missions/<int:mission_id>/lockers', methods=['POST'])
def create_locker(mission_id):
    data = _json_body()
    if data is None:
        return bad_request('No data provided')

    locker = get_service().create_locker(mission_id, data)
    return jsonify({'success': True, 'locker': locker.to_dict()}), 201


@admin_bp.route('/lockers/<int:locker_id>', methods=['PUT'])
def update_locker(locker_id):
    data = _json_body()
    if data is None:
        return bad_request('No data provided')

    locker = get_service().update_locker(locker_id, data)
    return jsonify({'success': True, 'locker': locker.to_dict()})


@admin_bp.route('/lockers/<int:locker_id>', methods=['DELETE'])
def delete_locker(locker_id):
    get_service().delete_locker(locker_id)
    return jsonify({'success': True, 'message': 'Locker deleted'})


# Rule Endpoints
@admin_bp.route('/missions/<int:mission_id>/rules', methods=['POST'])
def create_rule(mission_id):
    data = _json_body()
    if data is None:
        return bad_request('No data provided')

    rule = get_service().create_rule(mission_id, data)
    return jsonify({'success': True, 'rule': rule.to_dict()}), 201


@admin_bp.route('/rules/<int:rule_id>', methods=['PUT'])
def update_rule(rule_id):
    data = _json_body()
    if data is None:
        return bad_request('No data provided')

    rule = get_service().update_rule(rule_id, data)
    return jsonify({'success': True, 'rule': rule.to_dict()})


@admin_bp.route('/rules/<int:rule_id>', methods=['DELETE'])
def delete_rule(rule_id):
    get_service().delete_rule(rule_id)
    return jsonify({'success': True, 'message': 'Rule deleted'})


# Reward Endpoints
@admin_bp.route('/missions/<int:mission_id>/rewards', methods=['POST'])
def create_reward(mission_id):
    data = _json_body()
    if data is None:
        return bad_request('No data provided')

    reward = get_service().create_reward(mission_id, data)
    return jsonify({'success': True, 'reward': reward.to_dict()}), 201


@admin_bp.route('/rewards/<int:reward_id>', methods=['PUT'])
def update_reward(reward_id):
    data = _json_body()
    if data is None:
        return bad_request('No data provided')

    reward = get_service().update_reward(reward_id, data)
    return jsonify({'success': True, 'reward': reward.to_dict()})


@admin_bp.route('/rewards/<int:reward_id>', methods=['DELETE'])
def delete_reward(reward_id):
    get_service().delete_reward(reward_id)
    return jsonify({'success': True, 'message': 'Reward deleted'})


# Badge Endpoints
@admin_bp.route('/badges', methods=['GET'])
def list_badges():
    badges = get_service().list_badges()
    return jsonify({'success': True, 'badges': [b.to_dict() for b in badges]})


@admin_bp.route('/badges', methods=['POST'])
def create_badge():
    data = _json_body()
    if data is None:
        return bad_request('No data provided')

    badge = get_service().create_badge(data)
    return jsonify({'success': True, 'badge': badge.to_dict()}), 201


@admin_bp.route('/badges/<int:badge_id>', methods=['PUT'])
def update_badge(badge_id):
    data = _json_body()
    if data is None:
        return bad_request('No data provided')

    badge = get_service().update_badge(badge_id, data)
    return jsonify({'success': True, 'badge': badge.to_dict()})


@admin_bp.route('/badges/<int:badge_id>', methods=['DELETE'])
def delete_badge(badge_id):
    get_service().delete_badge(badge_id)
    return jsonify({'success': True, 'message': 'Badge deleted'})


# Seeding
@admin_bp.route('/seed', methods=['POST'])
def seed_defaults():
    """Create the default onboarding catalog (idempotent)."""
    result = get_service().initialize_defaults()
    return jsonify({'success': True, **result})
