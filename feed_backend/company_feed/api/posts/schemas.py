# company_feed/api/posts/schemas.py
from marshmallow import Schema, fields, validate, validates_schema, ValidationError

# --- 재사용을 위한 스키마 ---
class LikeResponseSchema(Schema):
    """좋아요 목록 응답 항목. like_id는 좋아요를 누른 사용자 ID와 같습니다."""
    like_id = fields.Str(dump_only=True)
    user_id = fields.Str(required=True)
    created_at = fields.DateTime(required=True)

# --- API 요청/응답 스키마 ---

class PostCreateSchema(Schema):
    """POST /api/posts 요청 본문의 유효성을 검사합니다."""
    content = fields.Str(load_default='', validate=validate.Length(max=5000))
    image_urls = fields.List(fields.Str(validate=validate.Length(min=1)), load_default=list)
    metadata = fields.Dict(keys=fields.Str(), load_default=None, allow_none=True)

    @validates_schema
    def validate_content_or_images(self, data, **kwargs):
        if not data.get('content', '').strip() and not data.get('image_urls'):
            raise ValidationError("내용이나 이미지 중 하나는 반드시 있어야 합니다.", field_name='content')

class PostUploadFormSchema(Schema):
    """POST /api/posts/upload (multipart) 의 텍스트 필드"""
    content = fields.Str(load_default='', validate=validate.Length(max=5000))

class PostUpdateSchema(Schema):
    """PATCH /api/posts/{post_id} 요청 본문의 유효성을 검사합니다."""
    content = fields.Str(required=True, validate=validate.Length(max=5000))
    image_urls = fields.List(fields.Str(validate=validate.Length(min=1)), load_default=None, allow_none=True)

class PostResponseSchema(Schema):
    """게시글 정보 응답을 위한 최종 JSON 형식을 정의합니다."""
    post_id = fields.Str(dump_only=True)
    user_id = fields.Str(required=True)
    company_id = fields.Str(required=True)
    content = fields.Str(required=True)
    image_urls = fields.List(fields.Str(), required=True)
    like_count = fields.Int(required=True)
    comment_count = fields.Int(required=True)
    share_count = fields.Int(required=True)
    is_deleted = fields.Bool(required=True)
    metadata = fields.Dict(allow_none=True)
    created_at = fields.DateTime(required=True)
    updated_at = fields.DateTime(allow_none=True)

class PostCreationResponseSchema(Schema):
    """이미지 업로드를 포함한 게시글 생성 결과"""
    post_id = fields.Str(required=True)
    image_urls = fields.List(fields.Str(), required=True)
    failed_uploads = fields.Int(required=True)
    message = fields.Str(attribute='summary', dump_only=True)
