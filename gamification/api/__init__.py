"""
API blueprints for the gamification service.
"""
