"""
OGSM Manager
SQLAlchemy instance shared by every model module.

Usage:
    from ogsm_manager.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
