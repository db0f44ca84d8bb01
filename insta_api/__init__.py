# insta_api/__init__.py

# =====================================================================================
# 1. Environment variables (loaded before anything reads them)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. Module imports
# =====================================================================================
import os
import logging
from flask import Flask
import firebase_admin
from firebase_admin import credentials, firestore

# - configuration / core
from insta_api.core.config import config_by_name
from insta_api.core.errors import register_error_handlers
from insta_api.core.security import init_jwt

# - API blueprints
from insta_api.api.auth.routes import auth_bp
from insta_api.api.users.routes import users_bp
from insta_api.api.posts.routes import posts_bp
from insta_api.api.comments.routes import comments_bp
from insta_api.api.notifications.routes import notifications_bp
from insta_api.api.uploads.routes import uploads_bp

# - services
from insta_api.services.storage_service import StorageService
from insta_api.services.notification_service import NotificationService
from insta_api.services.google_auth_service import GoogleAuthService
from insta_api.api.auth.services import AuthService
from insta_api.api.users.services import UserService
from insta_api.api.posts.services import PostService
from insta_api.api.comments.services import CommentService


def _init_firebase(app: Flask):
    if firebase_admin._apps:
        return
    cred_path = app.config['FIREBASE_CREDENTIALS_PATH']
    if not cred_path or not os.path.exists(cred_path):
        raise FileNotFoundError(f"Firebase credentials file not found: {cred_path}")
    cred = credentials.Certificate(cred_path)
    firebase_admin.initialize_app(cred, {
        'storageBucket': app.config['FIREBASE_STORAGE_BUCKET']
    })


def create_app(config_name: str = None, db=None, bucket=None):
    """
    Flask application factory.

    :param config_name: key of config_by_name, defaults to FLASK_ENV
    :param db: Firestore client to use instead of the one from firebase_admin (tests)
    :param bucket: Storage bucket to use instead of the configured one (tests)
    """
    # =====================================================================================
    # 3. Flask app and base configuration
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    # =====================================================================================
    # 4. Extensions and external services
    # =====================================================================================
    init_jwt(app)

    if db is None or bucket is None:
        _init_firebase(app)
    if db is None:
        db = firestore.client()

    # =====================================================================================
    # 5. Service instances stored on 'app.services' (dependency injection)
    # =====================================================================================
    app.services = {}

    # 5-1. shared services other domains build on
    try:
        storage_instance = StorageService(bucket=bucket)
        storage_instance.init_app(app)
        app.services['storage'] = storage_instance
    except Exception as e:
        logging.error(f"Failed to initialize storage service: {e}")
        raise

    google_auth_instance = GoogleAuthService()
    google_auth_instance.init_app(app)
    app.services['google_auth'] = google_auth_instance

    app.services['notifications'] = NotificationService(db=db)

    # 5-2. domain services receiving other services
    app.services['posts'] = PostService(db=db, notification_service=app.services['notifications'])
    app.services['comments'] = CommentService(db=db, notification_service=app.services['notifications'])
    app.services['users'] = UserService(
        db=db,
        post_service=app.services['posts'],
        notification_service=app.services['notifications']
    )
    app.services['auth'] = AuthService(user_service=app.services['users'])

    # =====================================================================================
    # 6. Blueprints
    # =====================================================================================
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(users_bp, url_prefix='/api/user')
    app.register_blueprint(posts_bp, url_prefix='/api/post')
    app.register_blueprint(comments_bp, url_prefix='/api/comment')
    app.register_blueprint(notifications_bp, url_prefix='/api/notification')
    app.register_blueprint(uploads_bp, url_prefix='/api/upload')

    # =====================================================================================
    # 7. Global error handlers
    # =====================================================================================
    register_error_handlers(app)

    # =====================================================================================
    # 8. Logging and return
    # =====================================================================================
    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
