# company_feed/services/relay_client.py
import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any

import requests

from company_feed.utils.exceptions import UploadFailed

COMPANY_HEADER = 'x-company-id'


@dataclass(frozen=True)
class RelayConfig:
    """
    오브젝트 스토어 릴레이 접속 설정.
    회사(세션)마다 하나씩 만들어 RelayClient에 넘기며 생성 후에는 바뀌지 않습니다.
    """
    base_url: str
    company_id: str
    public_base_url: Optional[str] = None
    timeout_seconds: float = 30.0

    def __post_init__(self):
        if not self.base_url:
            raise ValueError("릴레이 base_url이 필요합니다.")
        if not self.company_id:
            raise ValueError("릴레이 요청에는 company_id가 필요합니다.")


@dataclass
class StorageResult:
    """POST /upload 응답 본문"""
    success: bool
    message: str = ''
    key: str = ''
    size: Optional[int] = None
    content_type: Optional[str] = None

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'StorageResult':
        return cls(
            success=bool(data.get('success', False)),
            message=data.get('message') or '',
            key=data.get('key') or '',
            size=data.get('size'),
            content_type=data.get('contentType'),
        )

    def to_error(self) -> UploadFailed:
        return UploadFailed(self.message or "업로드에 실패했습니다.")


class RelayClient:
    """
    오브젝트 스토어 릴레이(HTTP) 클라이언트.
    업로드 실패는 예외로 던지지 않고 success=False인 StorageResult로 반환합니다.
    """

    def __init__(self, config: RelayConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        self._base_url = config.base_url.rstrip('/')

    def _headers(self) -> Dict[str, str]:
        return {COMPANY_HEADER: self.config.company_id}

    def initialize(self) -> bool:
        """
        릴레이 상태 확인용 호출. 실패해도 업로드를 막지 않도록 False만 반환합니다.
        """
        try:
            response = self.session.post(
                f"{self._base_url}/initialize",
                headers=self._headers(),
                timeout=self.config.timeout_seconds,
            )
            if response.status_code == 200:
                logging.info(f"릴레이 초기화 완료 (company_id: {self.config.company_id})")
                return True
            logging.warning(f"릴레이 초기화 실패: {response.status_code} {response.text}")
            return False
        except requests.RequestException as e:
            logging.warning(f"릴레이 초기화 오류: {e}")
            return False

    def upload_file(self, data: bytes, filename: str, folder: Optional[str] = None,
                    content_type: Optional[str] = None) -> StorageResult:
        """
        파일 하나를 업로드합니다.

        :param data: 파일 바이트
        :param filename: 원본 파일명
        :param folder: 저장 폴더 (선택)
        :param content_type: MIME 타입 (선택)
        :return: StorageResult (실패 시 success=False)
        """
        form = {'folder': folder} if folder else None
        files = {'file': (filename, data, content_type or 'application/octet-stream')}
        try:
            response = self.session.post(
                f"{self._base_url}/upload",
                headers=self._headers(),
                data=form,
                files=files,
                timeout=self.config.timeout_seconds,
            )
        except requests.RequestException as e:
            logging.error(f"업로드 요청 실패 (filename: {filename}): {e}")
            return StorageResult(success=False, message=str(e), content_type=content_type)

        if response.status_code != 200:
            logging.error(f"업로드 실패 (filename: {filename}): {response.status_code} {response.text}")
            return StorageResult(success=False, message=f"Upload failed: {response.status_code} {response.text}",
                                 content_type=content_type)

        try:
            return StorageResult.from_json(response.json())
        except ValueError as e:
            logging.error(f"업로드 응답 파싱 실패 (filename: {filename}): {e}")
            return StorageResult(success=False, message=f"잘못된 응답 형식입니다: {e}", content_type=content_type)

    def public_url(self, key: str) -> str:
        """
        저장 키에 대한 프록시 읽기 URL (GET /files/{key})
        클라이언트가 릴레이에 다른 주소로 접근하면 public_base_url을 사용합니다.
        """
        if not key:
            return ''
        base = (self.config.public_base_url or self._base_url).rstrip('/')
        return f"{base}/files/{key}"


@dataclass
class ImageUpload:
    """게시글 작성 시 함께 올릴 이미지 한 장"""
    data: bytes
    filename: str
    content_type: Optional[str] = None
