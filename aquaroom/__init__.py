import os

from flask import Flask, abort, jsonify, send_from_directory

from .config import config
from .errors import register_error_handlers
from .extensions import cors, db, jwt, migrate
from .utils.api import err
from .utils.logger import configure, get_logger

logger = get_logger()


def _register_jwt_handlers():
    @jwt.unauthorized_loader
    def missing_token(reason):
        return err("กรุณาเข้าสู่ระบบ", 401)

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return err("โทเค็นไม่ถูกต้อง", 401)

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return err("เซสชันหมดอายุ กรุณาเข้าสู่ระบบใหม่", 401)


def create_app(config_name=None, overrides=None):
    config_name = config_name or os.environ.get("FLASK_CONFIG", "default")
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name])
    config[config_name].init_app(app)
    if overrides:
        app.config.update(overrides)

    configure(app.config["LOG_LEVEL"])

    # Init extensions
    db.init_app(app)
    jwt.init_app(app)
    cors.init_app(
        app,
        resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}},
        supports_credentials=True,
    )
    migrate.init_app(app, db)
    _register_jwt_handlers()

    # Register blueprints
    from .auth import bp as auth_bp; app.register_blueprint(auth_bp)
    from .product import bp as product_bp; app.register_blueprint(product_bp)
    from .category import bp as category_bp; app.register_blueprint(category_bp)
    from .coupon import bp as coupon_bp, public_bp as coupon_public_bp
    app.register_blueprint(coupon_bp)
    app.register_blueprint(coupon_public_bp)
    from .customer import bp as customer_bp; app.register_blueprint(customer_bp)
    from .order import bp as order_bp; app.register_blueprint(order_bp)
    from .alert import bp as alert_bp; app.register_blueprint(alert_bp)
    from .contact import bp as contact_bp; app.register_blueprint(contact_bp)
    from .payment import bp as payment_bp, bank_bp as bank_account_bp
    app.register_blueprint(payment_bp)
    app.register_blueprint(bank_account_bp)
    from .setting import bp as setting_bp; app.register_blueprint(setting_bp)
    from .analytics import bp as analytics_bp; app.register_blueprint(analytics_bp)
    from .upload import bp as upload_bp; app.register_blueprint(upload_bp)
    from .shipping import bp as shipping_bp; app.register_blueprint(shipping_bp)

    register_error_handlers(app)

    from .cli import register_cli
    register_cli(app)

    @app.get("/")
    def health():
        return jsonify(ok=True, msg="AquaRoom admin API running")

    @app.get("/uploads/<path:filename>")
    def uploaded_file(filename):
        return send_from_directory(app.config["UPLOAD_FOLDER"], filename)

    @app.get("/admin", defaults={"path": "index.html"})
    @app.get("/admin/<path:path>")
    def admin_shell(path):
        root = app.config.get("ADMIN_STATIC_DIR")
        if not root:
            abort(404)
        if not os.path.isfile(os.path.join(root, path)):
            path = "index.html"
        return send_from_directory(root, path)

    if app.config.get("AUTO_CREATE_TABLES"):
        with app.app_context():
            db.create_all()

    logger.info("App created with %s config", config_name)
    return app
