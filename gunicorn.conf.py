"""
Gunicorn configuration.

Sync workers process events in parallel; the completion ledger relies on
unique constraints and row locks, not on a single worker.
"""
import os

bind = f"0.0.0.0:{os.getenv('PORT', '8080')}"

workers = int(os.getenv('GUNICORN_WORKERS', '2'))
worker_class = 'sync'
timeout = 60
keepalive = 5

# Logging
accesslog = '-'  # stdout
errorlog = '-'   # stderr
loglevel = os.getenv('LOG_LEVEL', 'info')
capture_output = True

proc_name = 'gamification'

# Each worker builds its own engine
preload_app = False

graceful_timeout = 30


def on_starting(server):
    server.log.info("Starting gamification service")


def on_exit(server):
    server.log.info("Gamification service shutting down")
