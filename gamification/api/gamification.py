"""
Gamification API Endpoints

Store-facing missions, progress, rewards and badges, plus event intake.
The store is identified by the X-Store-Id header.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..middleware.store_auth import require_store
from ..services.gamification_service import GamificationService
from ..utils.errors import bad_request, conflict, ErrorCode

gamification_bp = Blueprint('gamification', __name__)


def get_service() -> GamificationService:
    """Get gamification service configured from the current app."""
    return GamificationService.from_config(current_app.config)


def _flag(name: str) -> bool:
    return request.args.get(name, 'false').lower() in ('1', 'true', 'yes')


# Mission Endpoints
@gamification_bp.route('/missions', methods=['GET'])
@require_store
def list_missions():
    """List missions available to the store."""
    service = get_service()

    if _flag('include_tasks'):
        missions = service.get_missions_with_tasks(g.store_id)
    else:
        missions = [service.describe_mission(m, g.store_id) for m in service.get_available_missions(g.store_id)]

    return jsonify({
        'success': True,
        'missions': missions,
        'total': len(missions),
    })


@gamification_bp.route('/missions/<int:mission_id>', methods=['GET'])
@require_store
def get_mission(mission_id):
    """Get one mission with the store's task completion."""
    service = get_service()
    return jsonify({
        'success': True,
        'mission': service.get_mission(mission_id, g.store_id),
    })


@gamification_bp.route('/missions/<int:mission_id>/ignore', methods=['POST'])
@require_store
def ignore_mission(mission_id):
    """Hide a mission for the store."""
    service = get_service()
    if not service.ignore_mission(mission_id, g.store_id):
        return conflict('Mission is already completed and cannot be ignored')

    return jsonify({
        'success': True,
        'message': 'Mission ignored',
    })


# Progress Endpoints
@gamification_bp.route('/progress/summary', methods=['GET'])
@require_store
def progress_summary():
    """Mission and task completion totals for the store."""
    service = get_service()
    return jsonify({
        'success': True,
        'summary': service.get_progress_summary(g.store_id),
    })


# Task Endpoints
@gamification_bp.route('/tasks', methods=['GET'])
@require_store
def list_tasks():
    """List active tasks with the store's completion per mission."""
    service = get_service()
    tasks = service.get_tasks(g.store_id)
    return jsonify({
        'success': True,
        'tasks': tasks,
        'total': len(tasks),
    })


@gamification_bp.route('/tasks/<int:task_id>/complete', methods=['POST'])
@require_store
def complete_task(task_id):
    """Manually complete a task within a mission."""
    data = request.get_json(silent=True) or {}
    service = get_service()
    result = service.complete_task_manually(task_id, data.get('mission_id'), g.store_id)

    message = 'Task was already completed.' if result['already_completed'] else 'Task completed successfully.'
    return jsonify({
        'success': True,
        'message': message,
        'data': result,
    })


@gamification_bp.route('/tasks/<int:task_id>/ignore', methods=['POST'])
@require_store
def ignore_task(task_id):
    """Skip a task within a mission for the store."""
    data = request.get_json(silent=True) or {}
    service = get_service()
    if not service.ignore_task(task_id, data.get('mission_id'), g.store_id):
        return conflict('Task is already completed and cannot be ignored')

    return jsonify({
        'success': True,
        'message': 'Task ignored',
    })


# Reward Endpoints
@gamification_bp.route('/rewards', methods=['GET'])
@require_store
def list_rewards():
    """Rewards earned through completed missions."""
    service = get_service()
    rewards = service.get_store_rewards(g.store_id)
    return jsonify({
        'success': True,
        'rewards': [r.to_dict() for r in rewards],
        'total': len(rewards),
    })


@gamification_bp.route('/badges', methods=['GET'])
@require_store
def list_badges():
    """Badges earned by the store."""
    service = get_service()
    badges = service.get_store_badges(g.store_id)
    return jsonify({
        'success': True,
        'badges': badges,
        'total': len(badges),
    })


@gamification_bp.route('/leaderboard', methods=['GET'])
def leaderboard():
    """Stores ranked by points."""
    limit = request.args.get('limit', 10, type=int)
    if limit < 1 or limit > 100:
        return bad_request('limit must be between 1 and 100')

    service = get_service()
    entries = service.get_leaderboard(limit)
    return jsonify({
        'success': True,
        'leaderboard': entries,
        'total': len(entries),
    })


# Event Intake
@gamification_bp.route('/events', methods=['POST'])
@require_store
def receive_event():
    """
    Process a domain event for the store.

    Body: {"event_name": "...", "payload": {...}}
    """
    data = request.get_json(silent=True)
    if not data:
        return bad_request('No data provided')

    event_name = data.get('event_name')
    if not event_name or not isinstance(event_name, str):
        return bad_request('Missing required field: event_name', ErrorCode.MISSING_FIELD)

    payload = data.get('payload') or {}
    if not isinstance(payload, dict):
        return bad_request('payload must be an object')

    service = get_service()
    result = service.process_event(event_name, g.store_id, payload)

    return jsonify({
        'success': True,
        'result': result,
    })
