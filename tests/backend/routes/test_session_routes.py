from datetime import timedelta

import pytest
from starlette.requests import Request
from starlette.responses import Response

from backend.auth import jwt_handler
from backend.auth.dependencies import get_current_user, get_current_user_id, get_optional_user_id
from backend.core import config
from backend.core.errors import Unauthorized
from backend.repositories.users import UserRepository
from backend.routes.session_routes import get_session_user, login, logout
from backend.schemas import LoginRequest, StudentView, TutorView


def _request_with_cookie(value: str | None = None) -> Request:
    headers = []
    if value is not None:
        headers.append((b'cookie', f'{config.SESSION_COOKIE_NAME}={value}'.encode()))
    return Request({'type': 'http', 'method': 'GET', 'path': '/', 'headers': headers})


def test_login_sets_signed_session_cookie(db, store) -> None:
    user = UserRepository(db).register('tutor', 'pw', is_tutor=True)
    response = Response()

    view = login(LoginRequest(username='tutor', password='pw'), response, db=db, store=store)

    assert isinstance(view, TutorView)
    cookie_header = response.headers['set-cookie']
    assert cookie_header.startswith(f'{config.SESSION_COOKIE_NAME}=')
    assert 'httponly' in cookie_header.lower()
    assert f'Max-Age={30 * 24 * 60 * 60}' in cookie_header

    value = cookie_header.split(';', 1)[0].split('=', 1)[1]
    token = jwt_handler.decode_session_cookie(value)
    assert store.resolve(token)['userID'] == user.id


def test_login_with_wrong_password_is_unauthorized(db, store) -> None:
    UserRepository(db).register('tutor', 'pw')

    with pytest.raises(Unauthorized):
        login(LoginRequest(username='tutor', password='nope'), Response(), db=db, store=store)


def test_current_user_id_from_cookie(store) -> None:
    token = store.create(5)
    request = _request_with_cookie(jwt_handler.encode_session_cookie(token))

    assert get_current_user_id(request, store) == 5


def test_current_user_id_without_cookie_is_unauthorized(store) -> None:
    with pytest.raises(Unauthorized):
        get_current_user_id(_request_with_cookie(), store)


def test_current_user_id_with_raw_token_cookie_is_unauthorized(store) -> None:
    token = store.create(5)

    with pytest.raises(Unauthorized):
        get_current_user_id(_request_with_cookie(token), store)


def test_current_user_id_after_session_expiry_is_unauthorized(store, clock) -> None:
    token = store.create(5, max_age=timedelta(hours=1))
    request = _request_with_cookie(jwt_handler.encode_session_cookie(token))

    clock.advance(hours=2)

    with pytest.raises(Unauthorized):
        get_current_user_id(request, store)


def test_optional_user_id_is_none_without_cookie(store) -> None:
    assert get_optional_user_id(_request_with_cookie(), store) is None


def test_current_user_for_deleted_user_is_unauthorized(db) -> None:
    with pytest.raises(Unauthorized):
        get_current_user(user_id=999, db=db)


def test_session_user_is_student_shaped(db) -> None:
    repository = UserRepository(db)
    student = repository.register('student', 'pw', grade=10, rating=4.0)
    repository.add_subject(student.id, 'math')

    view = get_session_user(current_user=repository.get(student.id))

    assert isinstance(view, StudentView)
    assert view.kind == 'student'
    assert view.grade == 10
    assert [subject.name for subject in view.subjects] == ['math']
    assert 'rating' not in view.model_dump()


def test_logout_deletes_session_and_clears_cookie(store) -> None:
    token = store.create(5)
    request = _request_with_cookie(jwt_handler.encode_session_cookie(token))
    response = Response()

    result = logout(request, response, store=store)

    assert result.message == 'Logged out'
    assert 'max-age=0' in response.headers['set-cookie'].lower()
    with pytest.raises(Unauthorized):
        store.resolve(token)


def test_logout_with_tampered_cookie_still_clears_cookie(store) -> None:
    response = Response()

    logout(_request_with_cookie('tampered'), response, store=store)

    assert config.SESSION_COOKIE_NAME in response.headers['set-cookie']


# HTTP surface


def test_session_user_over_http(client) -> None:
    client.post(
        '/api/users',
        json={'username': 'tutor', 'password': 'pw', 'is_tutor': True, 'rating': 9.0},
    )

    unauthenticated = client.get('/api/session/user')
    logged_in = client.post('/api/login', json={'username': 'tutor', 'password': 'pw'})
    session_user = client.get('/api/session/user')

    assert unauthenticated.status_code == 401
    assert unauthenticated.json()['status'] == 401
    assert logged_in.status_code == 200
    assert logged_in.json()['kind'] == 'tutor'
    assert session_user.status_code == 200
    body = session_user.json()
    assert body['kind'] == 'tutor'
    assert body['username'] == 'tutor'
    assert body['rating'] == 9.0
    assert body['reviews'] == []
    assert 'password' not in body
    assert 'grade' not in body


def test_failed_login_over_http(client) -> None:
    client.post('/api/users', json={'username': 'foo', 'password': 'bar'})

    response = client.post('/api/login', json={'username': 'foo', 'password': 'wrong'})

    assert response.status_code == 401
    assert response.json() == {'message': 'Invalid username or password', 'status': 401}


def test_logout_over_http_ends_session(client) -> None:
    client.post('/api/users', json={'username': 'foo', 'password': 'bar'})
    client.post('/api/login', json={'username': 'foo', 'password': 'bar'})
    assert client.get('/api/session/user').status_code == 200

    response = client.post('/api/logout')

    assert response.status_code == 200
    assert client.get('/api/session/user').status_code == 401


def test_review_author_comes_from_session(client) -> None:
    tutor = client.post('/api/users', json={'username': 'tutor', 'password': 'pw', 'is_tutor': True}).json()['id']
    student = client.post('/api/users', json={'username': 'student', 'password': 'pw'}).json()['id']
    client.post('/api/login', json={'username': 'student', 'password': 'pw'})

    response = client.post(f'/api/users/{tutor}/reviews', json={'rating': 8, 'content': 'Patient'})

    assert response.status_code == 200
    assert response.json()['reviewer_id'] == student
