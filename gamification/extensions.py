"""
Flask extensions shared across the gamification service.

Kept in their own module so models and services can import `db`
without importing the application factory.
"""
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

# Catalog + ledger database
db = SQLAlchemy()

# Alembic migrations (migrations/versions)
migrate = Migrate()
