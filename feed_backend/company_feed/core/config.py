# company_feed/core/config.py

import os # 환경 변수를 읽기 위해 사용합니다.

class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # 피드 문서와 릴레이 업로드 파일이 저장되는 Firebase Storage 버킷 이름
    FIREBASE_STORAGE_BUCKET = os.getenv('FIREBASE_STORAGE_BUCKET')
    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')

    # 피드 서버가 이미지를 올릴 오브젝트 스토어 릴레이 주소 (예: http://localhost:3000)
    RELAY_BASE_URL = os.getenv('RELAY_BASE_URL')
    # 클라이언트에게 내려줄 이미지 URL의 주소 (없으면 RELAY_BASE_URL)
    RELAY_PUBLIC_BASE_URL = os.getenv('RELAY_PUBLIC_BASE_URL')

    # 트랜잭션 충돌 시 Firestore 클라이언트가 본문을 재실행하는 최대 횟수
    FIRESTORE_TRANSACTION_MAX_ATTEMPTS = int(os.getenv('FIRESTORE_TRANSACTION_MAX_ATTEMPTS', 5))

    # SSE 스트림에서 변경이 없을 때 keep-alive 주석을 보내는 간격(초)
    STREAM_HEARTBEAT_SECONDS = float(os.getenv('STREAM_HEARTBEAT_SECONDS', 15))

class DevelopmentConfig(Config):
    """개발 환경을 위한 설정 클래스입니다."""
    DEBUG = True
    FIREBASE_CREDENTIALS_PATH = os.getenv('DEV_FIREBASE_CREDENTIALS_PATH', Config.FIREBASE_CREDENTIALS_PATH)

class TestingConfig(Config):
    """테스트 환경을 위한 설정 클래스입니다."""
    TESTING = True
    DEBUG = False
    FIREBASE_CREDENTIALS_PATH = os.getenv('TEST_FIREBASE_CREDENTIALS_PATH')
    RELAY_BASE_URL = 'http://relay.test'
    STREAM_HEARTBEAT_SECONDS = 0.05

class ProductionConfig(Config):
    """운영 환경 설정 클래스입니다."""
    DEBUG = False

# config_by_name: FLASK_ENV 값에 따라 create_app / create_relay_app에서 설정 클래스를 선택합니다.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)
