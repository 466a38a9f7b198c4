# company_feed/api/posts/routes.py
import logging
from flask import Blueprint, request, jsonify, Response, current_app
from marshmallow import ValidationError

from company_feed.api.posts.schemas import (
    PostCreateSchema, PostUploadFormSchema, PostUpdateSchema, PostResponseSchema,
    PostCreationResponseSchema, LikeResponseSchema
)
from company_feed.api.request_context import get_identity
from company_feed.api.streaming import sse_response
from company_feed.services.relay_client import ImageUpload
from company_feed.utils.exceptions import NotFound, Conflicted, ValidationFailed

posts_bp = Blueprint('posts_bp', __name__)


@posts_bp.route('/posts', methods=['POST'])
def create_post():
    """
    새 게시글을 작성합니다. 이미지는 릴레이에 미리 업로드된 키 목록으로 전달합니다.
    """
    post_service = current_app.services['posts']
    try:
        company_id, user_id = get_identity()
        data = PostCreateSchema().load(request.get_json(silent=True) or {})
        post_id = post_service.create_post(user_id, company_id, data['content'], data['image_urls'], data['metadata'])
        return jsonify({"post_id": post_id}), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValidationFailed as e:
        return jsonify({"error_code": e.code, "message": e.message}), 400


@posts_bp.route('/posts/upload', methods=['POST'])
def create_post_with_images():
    """
    multipart 요청으로 본문과 이미지 파일(images)을 함께 받아 게시글을 작성합니다.
    일부 이미지 업로드가 실패해도 게시글은 생성되고 실패 개수가 응답에 포함됩니다.
    """
    post_service = current_app.services['posts']
    try:
        company_id, user_id = get_identity()
        form = PostUploadFormSchema().load(request.form.to_dict())
        uploads = [
            ImageUpload(data=f.read(), filename=f.filename or 'image', content_type=f.mimetype)
            for f in request.files.getlist('images')
        ]
        result = post_service.create_post_with_uploads(user_id, company_id, form['content'], uploads)
        return jsonify(PostCreationResponseSchema().dump(result)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValidationFailed as e:
        return jsonify({"error_code": e.code, "message": e.message}), 400


@posts_bp.route('/posts/<string:post_id>', methods=['GET'])
def get_post(post_id: str):
    post_service = current_app.services['posts']
    company_id, _ = get_identity(require_user=False)
    post = post_service.get_post(post_id, company_id)
    if not post or post.is_deleted:
        return jsonify({"error_code": "POST_NOT_FOUND", "message": "게시물을 찾을 수 없습니다."}), 404
    return jsonify(PostResponseSchema().dump(post)), 200


@posts_bp.route('/posts/<string:post_id>', methods=['PATCH'])
def update_post(post_id: str):
    post_service = current_app.services['posts']
    try:
        company_id, _ = get_identity()
        data = PostUpdateSchema().load(request.get_json(silent=True) or {})
        post_service.update_post(post_id, company_id, data['content'], data['image_urls'])
        return jsonify(PostResponseSchema().dump(post_service.get_post(post_id, company_id))), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValidationFailed as e:
        return jsonify({"error_code": e.code, "message": e.message}), 400
    except NotFound as e:
        return jsonify({"error_code": "POST_NOT_FOUND", "message": e.message}), 404


@posts_bp.route('/posts/<string:post_id>', methods=['DELETE'])
def delete_post(post_id: str):
    """게시글을 소프트 삭제합니다."""
    post_service = current_app.services['posts']
    try:
        company_id, _ = get_identity()
        post_service.delete_post(post_id, company_id)
        return Response(status=204)
    except NotFound as e:
        return jsonify({"error_code": "POST_NOT_FOUND", "message": e.message}), 404


@posts_bp.route('/posts/<string:post_id>/like', methods=['POST'])
def toggle_post_like(post_id: str):
    """게시글 좋아요를 누르거나 취소합니다."""
    post_service = current_app.services['posts']
    company_id, user_id = get_identity()
    try:
        is_liked = post_service.toggle_like(post_id, user_id, company_id)
        return jsonify({"is_liked": is_liked}), 200
    except NotFound as e:
        return jsonify({"error_code": "POST_NOT_FOUND", "message": e.message}), 404
    except Conflicted as e:
        logging.warning(f"게시글 좋아요 충돌 (post_id: {post_id}, user_id: {user_id})")
        return jsonify({"error_code": e.code, "message": e.message}), 409


@posts_bp.route('/posts/<string:post_id>/share', methods=['POST'])
def share_post(post_id: str):
    post_service = current_app.services['posts']
    company_id, _ = get_identity()
    try:
        post_service.increment_share_count(post_id, company_id)
        return Response(status=204)
    except NotFound as e:
        return jsonify({"error_code": "POST_NOT_FOUND", "message": e.message}), 404


# --- 라이브 쿼리 (Server-Sent Events) ---

@posts_bp.route('/posts/stream', methods=['GET'])
def stream_company_posts():
    post_service = current_app.services['posts']
    company_id, _ = get_identity(require_user=False)
    subscription = post_service.get_company_posts(company_id)
    return sse_response(subscription, PostResponseSchema(many=True).dump)


@posts_bp.route('/users/<string:user_id>/posts/stream', methods=['GET'])
def stream_user_posts(user_id: str):
    post_service = current_app.services['posts']
    company_id, _ = get_identity(require_user=False)
    subscription = post_service.get_user_posts(user_id, company_id)
    return sse_response(subscription, PostResponseSchema(many=True).dump)


@posts_bp.route('/posts/<string:post_id>/likes/stream', methods=['GET'])
def stream_post_likes(post_id: str):
    post_service = current_app.services['posts']
    company_id, _ = get_identity(require_user=False)
    subscription = post_service.get_post_likes(post_id, company_id)
    return sse_response(subscription, LikeResponseSchema(many=True).dump)


@posts_bp.route('/posts/<string:post_id>/liked/stream', methods=['GET'])
def stream_post_liked(post_id: str):
    """현재 사용자의 좋아요 여부를 실시간으로 전달합니다."""
    post_service = current_app.services['posts']
    company_id, user_id = get_identity()
    subscription = post_service.watch_post_liked(post_id, user_id, company_id)
    return sse_response(subscription, lambda liked: {"is_liked": liked})
