# company_feed/models/comment.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any

from company_feed.utils.datetime_utils import DateTimeUtils


@dataclass
class Comment:
    """
    Firestore 'companies/{companyId}/posts/{postId}/comments' 하위 컬렉션의 문서 구조.
    댓글도 자체 likes 하위 컬렉션을 가지며 like_count는 게시글과 같은 규칙으로 유지됩니다.
    """
    comment_id: str
    user_id: str
    content: str
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    updated_at: Optional[datetime] = None
    like_count: int = 0
    is_deleted: bool = False
    metadata: Optional[Dict[str, Any]] = None

    def to_firestore(self) -> Dict[str, Any]:
        data = {
            'userId': self.user_id,
            'content': self.content,
            'createdAt': self.created_at,
            'likeCount': self.like_count,
            'isDeleted': self.is_deleted,
        }
        if self.updated_at is not None:
            data['updatedAt'] = self.updated_at
        if self.metadata is not None:
            data['metadata'] = self.metadata
        return DateTimeUtils.for_firestore(data)

    @classmethod
    def from_snapshot(cls, snapshot) -> 'Comment':
        data = snapshot.to_dict() or {}
        return cls(
            comment_id=snapshot.id,
            user_id=data['userId'],
            content=data['content'],
            created_at=DateTimeUtils.from_firestore(data['createdAt']),
            updated_at=DateTimeUtils.from_firestore(data.get('updatedAt')),
            like_count=int(data.get('likeCount') or 0),
            is_deleted=bool(data.get('isDeleted', False)),
            metadata=data.get('metadata'),
        )
