"""
CLI Commands for the mission catalog and event processing.

Replay can be run from cron to recover events whose processing crashed:

# Replay unprocessed events (every 10 minutes)
*/10 * * * * cd /app && flask gamification replay-events --limit=500
"""

import json

import click
from flask import current_app
from flask.cli import with_appcontext

from ..services.catalog_service import CatalogService
from ..services.gamification_service import GamificationService


@click.group('gamification')
def gamification_cli():
    """Store missions commands."""
    pass


@gamification_cli.command('seed')
@with_appcontext
def seed():
    """Create the default onboarding missions, tasks, rewards and badges."""
    result = CatalogService().initialize_defaults()

    click.echo(f"Badges created: {result['badges_created']}")
    click.echo(f"Tasks created: {result['tasks_created']}")
    click.echo(f"Missions created: {result['missions_created']}")


@gamification_cli.command('replay-events')
@click.option('--limit', type=int, default=100, show_default=True, help='Maximum events to replay')
@click.option('--store-id', type=int, help='Only replay events of this store')
@with_appcontext
def replay_events(limit, store_id):
    """Re-handle logged events that were never marked processed."""
    service = GamificationService.from_config(current_app.config)
    result = service.replay_unprocessed(limit=limit, store_id=store_id)

    click.echo(f"Replayed: {result['replayed']}")
    if result['failed']:
        click.echo(f"Failed: {len(result['failed'])} (event ids: {', '.join(str(i) for i in result['failed'])})")
    click.echo(f"Remaining: {result['remaining']}")


@gamification_cli.command('handle-event')
@click.argument('event_name')
@click.argument('store_id', type=int)
@click.option('--payload', default='{}', help='Event payload as a JSON object')
@with_appcontext
def handle_event(event_name, store_id, payload):
    """Process one event for a store and print the result."""
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f'Invalid JSON: {e}', param_hint='--payload')
    if not isinstance(data, dict):
        raise click.BadParameter('Payload must be a JSON object', param_hint='--payload')

    service = GamificationService.from_config(current_app.config)
    result = service.process_event(event_name, store_id, data)

    click.echo(f"Completed tasks: {len(result['completed_tasks'])}")
    for task in result['completed_tasks']:
        click.echo(f"  - {task['task_key']} in {task['mission_key']} (+{task['points']} pts)")

    click.echo(f"Completed missions: {len(result['completed_missions'])}")
    for mission in result['completed_missions']:
        click.echo(f"  - {mission['mission_key']}")

    if result['failed_rewards']:
        click.echo(f"Failed rewards: {len(result['failed_rewards'])}")
        for reward in result['failed_rewards']:
            click.echo(f"  - {reward['reward_type']}={reward['reward_value']}: {reward.get('error')}")


def init_app(app):
    """Register CLI commands with the Flask app."""
    app.cli.add_command(gamification_cli)
