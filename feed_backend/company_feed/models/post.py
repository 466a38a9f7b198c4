# company_feed/models/post.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any

from company_feed.utils.datetime_utils import DateTimeUtils


@dataclass
class Post:
    """
    Firestore 'companies/{companyId}/posts' 컬렉션의 문서 구조를 정의하는 데이터클래스.

    - like_count, comment_count는 하위 컬렉션(likes, comments)에서 파생된 캐시 값이며
      트랜잭션 안에서만 변경됩니다.
    - 문서는 물리적으로 삭제되지 않고 is_deleted 플래그로 숨겨집니다.
    - Firestore 필드명은 모바일 클라이언트와 공유하는 camelCase를 사용합니다.
    """
    post_id: str
    user_id: str
    company_id: str
    content: str
    image_urls: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    updated_at: Optional[datetime] = None
    like_count: int = 0
    comment_count: int = 0
    share_count: int = 0
    is_deleted: bool = False
    metadata: Optional[Dict[str, Any]] = None

    def to_firestore(self) -> Dict[str, Any]:
        data = {
            'userId': self.user_id,
            'companyId': self.company_id,
            'content': self.content,
            'imageUrls': list(self.image_urls),
            'createdAt': self.created_at,
            'likeCount': self.like_count,
            'commentCount': self.comment_count,
            'shareCount': self.share_count,
            'isDeleted': self.is_deleted,
        }
        if self.updated_at is not None:
            data['updatedAt'] = self.updated_at
        if self.metadata is not None:
            data['metadata'] = self.metadata
        return DateTimeUtils.for_firestore(data)

    @classmethod
    def from_snapshot(cls, snapshot) -> 'Post':
        data = snapshot.to_dict() or {}
        return cls(
            post_id=snapshot.id,
            user_id=data['userId'],
            company_id=data['companyId'],
            content=data.get('content') or '',
            image_urls=list(data.get('imageUrls') or []),
            created_at=DateTimeUtils.from_firestore(data['createdAt']),
            updated_at=DateTimeUtils.from_firestore(data.get('updatedAt')),
            like_count=int(data.get('likeCount') or 0),
            comment_count=int(data.get('commentCount') or 0),
            share_count=int(data.get('shareCount') or 0),
            is_deleted=bool(data.get('isDeleted', False)),
            metadata=data.get('metadata'),
        )
