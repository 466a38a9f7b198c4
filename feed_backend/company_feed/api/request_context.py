# company_feed/api/request_context.py
from flask import request
from marshmallow import Schema, fields, validate

COMPANY_HEADER = 'x-company-id'
USER_HEADER = 'x-user-id'


class IdentityHeadersSchema(Schema):
    """
    요청 헤더로 전달되는 회사/사용자 식별자.
    인증은 이 서비스의 범위가 아니며 앞단 게이트웨이가 채워 준다고 가정합니다.
    """
    company_id = fields.Str(required=True, data_key=COMPANY_HEADER, validate=validate.Length(min=1))
    user_id = fields.Str(required=True, data_key=USER_HEADER, validate=validate.Length(min=1))


def get_identity(require_user: bool = True):
    """
    현재 요청의 (company_id, user_id)를 반환합니다.
    헤더가 없으면 marshmallow ValidationError를 던집니다.
    """
    headers = {
        COMPANY_HEADER: request.headers.get(COMPANY_HEADER),
        USER_HEADER: request.headers.get(USER_HEADER),
    }
    partial = () if require_user else ('user_id',)
    raw = {k: v for k, v in headers.items() if v is not None}
    data = IdentityHeadersSchema().load(raw, partial=partial)
    return data['company_id'], data.get('user_id')
