# company_feed/services/storage_service.py
import time
import uuid
import logging
from typing import Iterator, Optional, Tuple

from flask import Flask
from firebase_admin import storage
from werkzeug.utils import secure_filename

DEFAULT_FOLDER = 'posts'
CHUNK_SIZE = 256 * 1024


class StorageService:
    """
    오브젝트 스토어(Firebase Storage 버킷) 관련 로직을 담당하는 서비스 클래스입니다.
    릴레이 서버가 업로드된 파일을 키로 저장하고, 키로 다시 읽어 스트리밍하는 데 사용합니다.
    """

    def __init__(self, bucket=None):
        """
        실제 버킷 객체는 init_app 메서드를 통해 주입됩니다.
        (테스트에서는 버킷 대역을 직접 넘길 수 있습니다.)
        """
        self.bucket = bucket

    def init_app(self, app: Flask):
        """
        Flask 앱 초기화 과정에서 호출되어 Storage 버킷을 설정합니다.

        :param app: Flask 애플리케이션 객체
        """
        bucket_name = app.config.get('FIREBASE_STORAGE_BUCKET')
        if not bucket_name:
            logging.warning("StorageService: FIREBASE_STORAGE_BUCKET이 설정되지 않았습니다. 업로드 요청은 실패합니다.")
            return

        self.bucket = storage.bucket(bucket_name)
        logging.info("StorageService: Firebase Storage 서비스가 성공적으로 초기화되었습니다.")

    @property
    def configured(self) -> bool:
        return self.bucket is not None

    @staticmethod
    def build_key(filename: Optional[str], folder: Optional[str] = None) -> str:
        """
        저장 키를 만듭니다: {folder}/{epoch_ms}_{random}_{원본 파일명}
        폴더가 없으면 'posts'를 사용합니다.
        """
        segments = [secure_filename(part) for part in (folder or '').split('/')]
        folder_path = '/'.join(s for s in segments if s) or DEFAULT_FOLDER
        original_name = secure_filename(filename or '') or f"file_{int(time.time() * 1000)}"
        return f"{folder_path}/{int(time.time() * 1000)}_{uuid.uuid4().hex[:10]}_{original_name}"

    def upload_bytes(self, key: str, data: bytes, content_type: Optional[str]) -> None:
        if not self.bucket:
            raise RuntimeError("StorageService가 초기화되지 않았습니다. init_app을 먼저 호출해주세요.")

        blob = self.bucket.blob(key)
        blob.upload_from_string(data, content_type=content_type or 'application/octet-stream')
        logging.info(f"파일 업로드 완료 (key: {key}, size: {len(data)})")

    def open_for_read(self, key: str) -> Tuple[Iterator[bytes], Optional[str], Optional[int]]:
        """
        키에 해당하는 파일을 청크 단위로 읽는 이터레이터와 Content-Type, 크기를 반환합니다.

        :raises FileNotFoundError: 파일이 없을 때
        """
        if not self.bucket:
            raise RuntimeError("StorageService가 초기화되지 않았습니다. init_app을 먼저 호출해주세요.")

        blob = self.bucket.get_blob(key)
        if blob is None:
            raise FileNotFoundError(f"파일을 찾을 수 없습니다: {key}")

        def _chunks() -> Iterator[bytes]:
            with blob.open('rb', chunk_size=CHUNK_SIZE) as reader:
                while True:
                    chunk = reader.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    yield chunk

        return _chunks(), blob.content_type, blob.size
