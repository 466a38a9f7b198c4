# company_feed/api/uploads/routes.py

import logging
from flask import request, jsonify, Blueprint, current_app, Response, stream_with_context
from marshmallow import Schema, fields, validate, ValidationError

# 오브젝트 스토어 릴레이 블루프린트입니다.
# 릴레이 앱(create_relay_app)에 접두사 없이 등록됩니다: /initialize, /upload, /files/<key>
uploads_bp = Blueprint('uploads', __name__)

COMPANY_HEADER = 'x-company-id'


class UploadFormSchema(Schema):
    """업로드 multipart 요청의 텍스트 필드 스키마"""
    folder = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=200))


@uploads_bp.after_app_request
def add_cors_headers(response):
    """로컬 개발용 CORS 헤더. 모바일/웹 클라이언트가 x-company-id 헤더를 보냅니다."""
    response.headers['Access-Control-Allow-Origin'] = '*'
    response.headers['Access-Control-Allow-Methods'] = 'GET,POST,OPTIONS'
    response.headers['Access-Control-Allow-Headers'] = 'Content-Type,Authorization,x-company-id'
    response.headers['Access-Control-Allow-Credentials'] = 'true'
    return response


@uploads_bp.before_app_request
def log_and_answer_preflight():
    logging.info(f"[Storage Relay] {request.method} {request.path}")
    if request.method == 'OPTIONS':
        return Response(status=204)


@uploads_bp.route('/initialize', methods=['POST'])
def initialize():
    """
    클라이언트가 릴레이 가용성을 확인하는 가벼운 엔드포인트입니다.
    실패해도 클라이언트는 업로드를 계속 시도합니다.
    """
    logging.info(f"릴레이 초기화 요청 (company_id: {request.headers.get(COMPANY_HEADER)})")
    return jsonify({"success": True, "message": "initialized"}), 200


@uploads_bp.route('/upload', methods=['POST'])
def upload_file():
    """
    multipart 'file' 필드의 파일을 오브젝트 스토어에 저장하고 저장 키를 반환합니다.
    실패 시에도 가능한 한 {success: false, message} 형식으로 응답합니다.
    """
    storage_service = current_app.services['storage']

    uploaded = request.files.get('file')
    if uploaded is None:
        return jsonify({"success": False, "message": "No file uploaded"}), 400
    if not storage_service.configured:
        return jsonify({"success": False, "message": "Storage bucket not configured"}), 500

    try:
        form = UploadFormSchema().load(request.form.to_dict())
    except ValidationError as err:
        return jsonify({"success": False, "message": "잘못된 요청입니다.", "details": err.messages}), 400

    data = uploaded.read()
    content_type = uploaded.mimetype or 'application/octet-stream'
    key = storage_service.build_key(uploaded.filename, form['folder'])

    try:
        storage_service.upload_bytes(key, data, content_type)
    except Exception as e:
        logging.error(f"업로드 오류 (key: {key}): {e}", exc_info=True)
        return jsonify({"success": False, "message": str(e)}), 500

    return jsonify({
        "success": True,
        "message": "Uploaded",
        "key": key,
        "size": len(data),
        "contentType": content_type,
    }), 200


@uploads_bp.route('/files/<path:key>', methods=['GET'])
def get_file(key: str):
    """
    오브젝트 스토어의 파일을 릴레이를 거쳐 스트리밍합니다.
    클라이언트가 버킷 URL에 직접 접근할 때의 CORS 문제를 피하기 위한 경로입니다.
    """
    storage_service = current_app.services['storage']
    if not storage_service.configured:
        return Response("Storage bucket not configured", status=500)

    try:
        chunks, content_type, size = storage_service.open_for_read(key)
    except FileNotFoundError:
        return Response("Not found", status=404)
    except Exception as e:
        logging.error(f"파일 조회 오류 (key: {key}): {e}", exc_info=True)
        return Response("Not found", status=404)

    response = Response(stream_with_context(chunks), mimetype=content_type or 'application/octet-stream')
    if size:
        response.headers['Content-Length'] = str(size)
    return response
