# company_feed/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트 (Module Imports)
# =====================================================================================
import os
import logging
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
import firebase_admin
from firebase_admin import credentials, firestore

# - 설정
from company_feed.core.config import config_by_name

# - API 블루프린트
from company_feed.api.posts.routes import posts_bp
from company_feed.api.comments.routes import comments_bp
from company_feed.api.uploads.routes import uploads_bp

# - 서비스 모듈
from company_feed.api.posts.services import PostService
from company_feed.api.comments.services import CommentService
from company_feed.services.storage_service import StorageService
from company_feed.utils.exceptions import FeedServiceError

LOG_FORMAT = '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'


def _load_config(app: Flask, config_name=None) -> str:
    config_name = config_name or os.getenv('FLASK_ENV', 'development')
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False
    return config_name


def _init_firebase(app: Flask) -> None:
    """firebase_admin 앱은 프로세스당 한 번만 초기화합니다."""
    if firebase_admin._apps:
        return
    cred_path = app.config['FIREBASE_CREDENTIALS_PATH']
    if not cred_path or not os.path.exists(cred_path):
        raise FileNotFoundError(f"Firebase 인증 파일을 찾을 수 없습니다: {cred_path}")
    cred = credentials.Certificate(cred_path)
    options = {}
    if app.config.get('FIREBASE_STORAGE_BUCKET'):
        options['storageBucket'] = app.config['FIREBASE_STORAGE_BUCKET']
    firebase_admin.initialize_app(cred, options)


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(FeedServiceError)
    def handle_feed_service_error(err):
        response = {"error_code": err.code, "message": err.message}
        return jsonify(response), err.status_code

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        if isinstance(err, HTTPException):
            return err
        # 다른 핸들러에서 처리되지 않은 모든 예외를 여기서 처리
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": "서버 내부에서 예상치 못한 오류가 발생했습니다."}
        return jsonify(response), 500


def _configure_logging(app: Flask) -> None:
    if not app.debug:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)


def create_app(config_name=None, db=None):
    """
    피드 API Flask 애플리케이션 팩토리 함수.

    :param config_name: 'development' | 'testing' | 'production' (기본값: FLASK_ENV)
    :param db: 주입할 Firestore 클라이언트 (없으면 firebase_admin으로 생성)
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    app = Flask(__name__)
    config_name = _load_config(app, config_name)

    # =====================================================================================
    # 4. 외부 서비스 초기화
    # =====================================================================================
    if db is None:
        _init_firebase(app)
        db = firestore.client()

    # =====================================================================================
    # 5. 서비스 인스턴스 생성 및 'app.services'에 저장 (의존성 주입)
    # =====================================================================================
    max_attempts = app.config['FIRESTORE_TRANSACTION_MAX_ATTEMPTS']
    app.services = {
        'posts': PostService(db=db, relay_base_url=app.config.get('RELAY_BASE_URL'), max_attempts=max_attempts,
                             relay_public_base_url=app.config.get('RELAY_PUBLIC_BASE_URL')),
        'comments': CommentService(db=db, max_attempts=max_attempts),
    }
    if not app.config.get('RELAY_BASE_URL'):
        logging.warning("RELAY_BASE_URL이 설정되지 않았습니다. 게시글에 첨부한 이미지는 모두 업로드 실패로 처리됩니다.")

    # =====================================================================================
    # 6. 블루프린트 등록
    # =====================================================================================
    app.register_blueprint(posts_bp, url_prefix='/api')
    app.register_blueprint(comments_bp, url_prefix='/api')

    # =====================================================================================
    # 7. 전역 에러 핸들러 설정
    # =====================================================================================
    _register_error_handlers(app)

    # =====================================================================================
    # 8. 로깅 및 앱 반환
    # =====================================================================================
    _configure_logging(app)
    logging.info(f"Feed app created for '{config_name}' environment.")

    return app


def create_relay_app(config_name=None, bucket=None):
    """
    오브젝트 스토어 릴레이 Flask 애플리케이션 팩토리 함수.

    :param bucket: 주입할 Storage 버킷 (없으면 FIREBASE_STORAGE_BUCKET으로 생성)
    """
    app = Flask(__name__)
    config_name = _load_config(app, config_name)

    storage_instance = StorageService(bucket=bucket)
    if bucket is None:
        try:
            _init_firebase(app)
            storage_instance.init_app(app)
        except Exception as e:
            # 버킷이 없어도 릴레이는 뜨고, 업로드/조회 요청이 success:false로 응답합니다.
            logging.error(f"Failed to initialize storage service: {e}")
    app.services = {'storage': storage_instance}

    app.register_blueprint(uploads_bp)
    _register_error_handlers(app)
    _configure_logging(app)
    logging.info(f"Storage relay created for '{config_name}' environment.")

    return app
