from .health import health_bp
from .payments import payments_bp
from .schools import schools_bp


def register_blueprints(app):
    app.register_blueprint(health_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(schools_bp)
