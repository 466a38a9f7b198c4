# company_feed/api/comments/routes.py
import logging
from flask import Blueprint, request, jsonify, Response, current_app
from marshmallow import ValidationError

from company_feed.api.comments.schemas import CommentCreateSchema, CommentUpdateSchema, CommentResponseSchema
from company_feed.api.posts.schemas import LikeResponseSchema
from company_feed.api.request_context import get_identity
from company_feed.api.streaming import sse_response
from company_feed.utils.exceptions import NotFound, Conflicted, ValidationFailed


comments_bp = Blueprint('comments_bp', __name__)

@comments_bp.route('/posts/<string:post_id>/comments', methods=['POST'])
def create_comment(post_id: str):
    """
    특정 게시글에 새로운 댓글을 작성합니다.
    - 성공 시, 생성된 댓글 ID를 201 Created 상태 코드와 함께 반환합니다.
    - 게시글의 commentCount가 1 증가합니다.
    """
    comment_service = current_app.services['comments']
    try:
        company_id, user_id = get_identity()
        data = CommentCreateSchema().load(request.get_json(silent=True) or {})
        comment_id = comment_service.add_comment(post_id, user_id, company_id, data['content'], data['metadata'])
        return jsonify({"comment_id": comment_id}), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValidationFailed as e:
        return jsonify({"error_code": e.code, "message": e.message}), 400
    except NotFound as e: # 게시물이 없는 경우
        return jsonify({"error_code": "RESOURCE_NOT_FOUND", "message": e.message}), 404
    except Conflicted as e:
        logging.warning(f"댓글 작성 충돌 (post_id: {post_id}): {e}")
        return jsonify({"error_code": e.code, "message": e.message}), 409


@comments_bp.route('/posts/<string:post_id>/comments/<string:comment_id>', methods=['PATCH'])
def update_comment(post_id: str, comment_id: str):
    comment_service = current_app.services['comments']
    try:
        company_id, _ = get_identity()
        data = CommentUpdateSchema().load(request.get_json(silent=True) or {})
        comment_service.update_comment(post_id, comment_id, company_id, data['content'])
        return jsonify(CommentResponseSchema().dump(comment_service.get_comment(post_id, comment_id, company_id))), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValidationFailed as e:
        return jsonify({"error_code": e.code, "message": e.message}), 400
    except NotFound as e:
        return jsonify({"error_code": "COMMENT_NOT_FOUND", "message": e.message}), 404


@comments_bp.route('/posts/<string:post_id>/comments/<string:comment_id>', methods=['DELETE'])
def delete_comment(post_id: str, comment_id: str):
    """
    특정 댓글을 소프트 삭제합니다.
    - 게시물의 commentCount는 변하지 않습니다. (댓글 작성 횟수)
    """
    comment_service = current_app.services['comments']
    try:
        company_id, _ = get_identity()
        comment_service.delete_comment(post_id, comment_id, company_id)
        return Response(status=204)
    except NotFound as e:
        return jsonify({"error_code": "COMMENT_NOT_FOUND", "message": e.message}), 404


@comments_bp.route('/posts/<string:post_id>/comments/<string:comment_id>/like', methods=['POST'])
def toggle_comment_like(post_id: str, comment_id: str):
    """
    특정 댓글의 좋아요를 누르거나 취소합니다.
    """
    comment_service = current_app.services['comments']
    company_id, user_id = get_identity()
    try:
        is_liked = comment_service.toggle_comment_like(post_id, comment_id, user_id, company_id)
        return jsonify({"is_liked": is_liked}), 200
    except NotFound as e:
        return jsonify({"error_code": "COMMENT_NOT_FOUND", "message": e.message}), 404
    except Conflicted as e:
        return jsonify({"error_code": e.code, "message": e.message}), 409


@comments_bp.route('/posts/<string:post_id>/comments/stream', methods=['GET'])
def stream_comments(post_id: str):
    comment_service = current_app.services['comments']
    company_id, _ = get_identity(require_user=False)
    subscription = comment_service.get_comments(post_id, company_id)
    return sse_response(subscription, CommentResponseSchema(many=True).dump)


@comments_bp.route('/posts/<string:post_id>/comments/<string:comment_id>/likes/stream', methods=['GET'])
def stream_comment_likes(post_id: str, comment_id: str):
    comment_service = current_app.services['comments']
    company_id, _ = get_identity(require_user=False)
    subscription = comment_service.get_comment_likes(post_id, comment_id, company_id)
    return sse_response(subscription, LikeResponseSchema(many=True).dump)


@comments_bp.route('/posts/<string:post_id>/comments/<string:comment_id>/liked/stream', methods=['GET'])
def stream_comment_liked(post_id: str, comment_id: str):
    comment_service = current_app.services['comments']
    company_id, user_id = get_identity()
    subscription = comment_service.watch_comment_liked(post_id, comment_id, user_id, company_id)
    return sse_response(subscription, lambda liked: {"is_liked": liked})
