"""
WSGI entry point and Flask-Migrate / Alembic target.

Usage:
    gunicorn wsgi:app
    flask --app wsgi db migrate -m "description"
    flask --app wsgi db upgrade
"""

from ogsm_manager import create_app

app = create_app()
