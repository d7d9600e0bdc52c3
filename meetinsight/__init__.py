from flask import Flask, jsonify, redirect, render_template, request, url_for
from .extensions import db, login_manager, migrate, rq
from .workflow.registry import init_registry


def create_app(config_object='config.Config'):
    """Application factory.

    ``config_object`` is an import path or a class; tests pass
    ``config.TestConfig``.
    """
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    db.init_app(app)
    migrate.init_app(app, db, directory='alembic')
    login_manager.init_app(app)
    login_manager.login_view = 'auth.login'
    rq.init_app(app)
    init_registry(app)

    @login_manager.user_loader
    def load_user(user_id):
        from .models.user import User
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        # JSON clients get a 401, browsers go to the login form
        if request.path.startswith('/workspace'):
            return jsonify({"error": "Login required"}), 401
        return redirect(url_for('auth.login', next=request.path))

    from .blueprints.auth import bp as auth_bp
    app.register_blueprint(auth_bp, url_prefix="/auth")

    from .blueprints.workspace import bp as workspace_bp
    app.register_blueprint(workspace_bp, url_prefix="/workspace")

    @app.get('/')
    def index():
        from flask_login import current_user
        if not current_user.is_authenticated:
            return redirect(url_for('auth.login'))
        from .services.modules import AnalysisModule
        return render_template('workspace.html', modules=list(AnalysisModule))

    return app
