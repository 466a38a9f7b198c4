# company_feed/api/comments/test_comment_routes.py
"""댓글 API 엔드포인트 테스트"""

HEADERS = {'x-company-id': 'acme', 'x-user-id': 'bob'}


def _new_post(client):
    return client.post('/api/posts', headers=HEADERS, json={'content': 'hello'}).get_json()['post_id']


def test_comment_lifecycle(client):
    post_id = _new_post(client)

    created = client.post(f'/api/posts/{post_id}/comments', headers=HEADERS, json={'content': 'first!'})
    assert created.status_code == 201
    comment_id = created.get_json()['comment_id']
    assert client.get(f'/api/posts/{post_id}', headers=HEADERS).get_json()['comment_count'] == 1

    edited = client.patch(f'/api/posts/{post_id}/comments/{comment_id}', headers=HEADERS, json={'content': 'edit'})
    assert edited.status_code == 200
    assert edited.get_json()['content'] == 'edit'
    assert edited.get_json()['updated_at'] is not None

    liked = client.post(f'/api/posts/{post_id}/comments/{comment_id}/like', headers=HEADERS)
    assert liked.get_json() == {'is_liked': True}

    assert client.delete(f'/api/posts/{post_id}/comments/{comment_id}', headers=HEADERS).status_code == 204
    # 작성 횟수이므로 삭제 후에도 유지
    assert client.get(f'/api/posts/{post_id}', headers=HEADERS).get_json()['comment_count'] == 1


def test_comment_errors(client):
    post_id = _new_post(client)

    empty = client.post(f'/api/posts/{post_id}/comments', headers=HEADERS, json={'content': ''})
    assert empty.status_code == 400
    blank = client.post(f'/api/posts/{post_id}/comments', headers=HEADERS, json={'content': '   '})
    assert blank.status_code == 400
    assert blank.get_json()['error_code'] == 'VALIDATION_ERROR'

    missing_post = client.post('/api/posts/nope/comments', headers=HEADERS, json={'content': 'hi'})
    assert missing_post.status_code == 404

    assert client.post(f'/api/posts/{post_id}/comments/nope/like', headers=HEADERS).status_code == 404
    assert client.delete(f'/api/posts/{post_id}/comments/nope', headers=HEADERS).status_code == 404
    assert client.patch(f'/api/posts/{post_id}/comments/nope', headers=HEADERS,
                        json={'content': 'x'}).status_code == 404
