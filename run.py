"""
Gamification service entry point.
"""
import os
import sys
import logging

from gamification import create_app

logger = logging.getLogger('gamification.run')

# Default to production for container deployment
config_name = os.getenv('FLASK_ENV', 'production')

try:
    app = create_app(config_name)
except RuntimeError as e:
    logger.critical(f'Configuration error during app creation: {e}')
    sys.exit(1)

logger.info(f"Config: {config_name}, routes: {len(list(app.url_map.iter_rules()))}")

if __name__ == '__main__':
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=os.getenv('FLASK_ENV') == 'development'
    )
