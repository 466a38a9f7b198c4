# company_feed/models/like.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any

from company_feed.utils.datetime_utils import DateTimeUtils


@dataclass
class Like:
    """
    게시글/댓글의 'likes' 하위 컬렉션 문서.
    문서 ID가 곧 좋아요를 누른 사용자 ID이므로 대상별로 사용자당 최대 1개만 존재합니다.
    """
    user_id: str
    created_at: datetime = field(default_factory=DateTimeUtils.now)

    @property
    def like_id(self) -> str:
        return self.user_id

    def to_firestore(self) -> Dict[str, Any]:
        return DateTimeUtils.for_firestore({'userId': self.user_id, 'createdAt': self.created_at})

    @classmethod
    def from_snapshot(cls, snapshot) -> 'Like':
        data = snapshot.to_dict() or {}
        return cls(
            user_id=data.get('userId') or snapshot.id,
            created_at=DateTimeUtils.from_firestore(data['createdAt']),
        )
