"""
CLI Commands for the gamification service.

Usage:
    flask gamification seed                                   # Create the default mission catalog
    flask gamification replay-events --limit 500              # Re-handle unprocessed logged events
    flask gamification handle-event product_created 42 --payload '{"is_first_product": true}'
"""
from .gamification import init_app as init_gamification_commands


def init_app(app):
    """Register all CLI commands with the Flask app."""
    init_gamification_commands(app)
