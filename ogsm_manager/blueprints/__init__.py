"""
OGSM Manager
Blueprint registry.
"""

from ogsm_manager.blueprints.health_bp import health_bp
from ogsm_manager.blueprints.ogsm_bp import ogsm_bp
from ogsm_manager.blueprints.ogsm_template_bp import ogsm_template_bp

ALL_BLUEPRINTS = (ogsm_bp, ogsm_template_bp, health_bp)


def register_blueprints(app):
    """Attach every API blueprint to ``app``."""
    for bp in ALL_BLUEPRINTS:
        app.register_blueprint(bp)
