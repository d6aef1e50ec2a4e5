"""
Middleware package for the gamification service.
"""
from .store_auth import require_store, require_admin_token, get_store_id_from_request
