"""
app.py - Application Factory
Entry point for the score book Flask application.
Uses the Application Factory pattern for modularity and testing.
"""

import logging

from flask import Flask, jsonify
from config import config
from extensions import db, migrate

logger = logging.getLogger(__name__)


def create_app(config_name='development'):
    """
    Application Factory Function

    Args:
        config_name (str): Configuration to use ('development', 'production', 'testing')

    Returns:
        Flask: Configured Flask application instance
    """
    app = Flask(__name__)

    # Load configuration from config.py based on environment
    config_class = config[config_name]
    app.config.from_object(config_class)
    config_class.init_app(app)

    configure_logging(app)

    # Initialize extensions with the app
    db.init_app(app)
    migrate.init_app(app, db)

    # Fire-and-forget dispatcher for compiled-result events
    from services import Notifier
    app.extensions['score_notifier'] = Notifier()

    register_blueprints(app)
    register_error_handlers(app)

    from commands import register_commands
    register_commands(app)

    # Import models so Flask-Migrate can detect them
    with app.app_context():
        import models  # noqa: F401

    logger.debug("Application created with %s config", config_name)
    return app


def configure_logging(app):
    """
    Root logging for the whole application (LOG_LEVEL / LOG_FORMAT config)
    """
    level = getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO)
    logging.basicConfig(level=level, format=app.config['LOG_FORMAT'])
    logging.getLogger().setLevel(level)
    app.logger.setLevel(level)


def register_blueprints(app):
    """
    Register all application blueprints (modular route handlers)
    """
    from blueprints.scores.routes import scores_bp
    from blueprints.results.routes import results_bp

    app.register_blueprint(scores_bp, url_prefix='/scores')
    app.register_blueprint(results_bp, url_prefix='/results')

    @app.route('/')
    def index():
        """Service summary"""
        return jsonify({
            'name': 'scorebook',
            'grade_scale': app.config['GRADE_SCALE'],
            'pass_mark': app.config['PASS_MARK']
        })


def register_error_handlers(app):
    """
    Register JSON error handlers for common HTTP errors
    """
    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'success': False, 'error': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'success': False, 'error': 'Method not allowed'}), 405

    @app.errorhandler(413)
    def too_large(error):
        return jsonify({'success': False, 'error': 'Upload is too large'}), 413

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()  # Rollback any failed database transactions
        logger.error("Unhandled error: %s", getattr(error, 'original_exception', error))
        return jsonify({'success': False, 'error': 'Internal server error'}), 500


# Run the application
if __name__ == '__main__':
    app = create_app('development')

    with app.app_context():
        db.create_all()

    app.run(
        host='0.0.0.0',
        port=5000,
        debug=True
    )
