"""Tests for password hashing, session tokens and the auth cookie."""

from datetime import timedelta

import jwt
import pytest
from flask import Response

from artshare import create_app
from artshare.security import (
    attach_session_cookie,
    check_password,
    hash_password,
    issue_token,
    verify_token,
)

from conftest import TEST_SECRET


def test_hash_password_is_salted_and_one_way():
    first = hash_password('s3cret-pass', iterations=1000)
    second = hash_password('s3cret-pass', iterations=1000)
    assert first != second
    assert 's3cret-pass' not in first
    assert first.startswith('pbkdf2_sha256$1000$')


def test_check_password():
    stored = hash_password('s3cret-pass', iterations=1000)
    assert check_password('s3cret-pass', stored)
    assert not check_password('wrong-pass', stored)


@pytest.mark.parametrize('stored', ['', 'not-a-hash', 'md5$1$00$00', 'pbkdf2_sha256$x$zz$zz', None])
def test_check_password_malformed_hash(stored):
    assert check_password('anything', stored) is False


def test_token_round_trip(app):
    with app.app_context():
        token = issue_token(42)
        assert verify_token(token) == '42'


def test_token_expires_after_seven_days(app):
    with app.app_context():
        token = issue_token(7)
    claims = jwt.decode(token, TEST_SECRET, algorithms=['HS256'])
    assert claims['exp'] - claims['iat'] == int(timedelta(days=7).total_seconds())
    assert claims['sub'] == '7'


def test_expired_token_is_rejected(app):
    with app.app_context():
        token = issue_token(7, expires_delta=timedelta(seconds=-1))
        assert verify_token(token) is None


def test_token_signed_with_other_secret_is_rejected(app, app_config):
    with app.app_context():
        token = issue_token(7)
    other = create_app({**app_config, 'JWT_SECRET_KEY': 'a-completely-different-secret-value'})
    with other.app_context():
        assert verify_token(token) is None


@pytest.mark.parametrize('token', ['', 'definitelynotatoken', 'a.b.c'])
def test_malformed_token_is_rejected(app, token):
    with app.app_context():
        assert verify_token(token) is None


def test_token_without_identity_is_rejected(app):
    token = jwt.encode({'foo': 'bar'}, TEST_SECRET, algorithm='HS256')
    with app.app_context():
        assert verify_token(token) is None


def test_session_cookie_flags_in_development(app):
    with app.test_request_context():
        response = attach_session_cookie(Response(), 'tok')
    cookie = response.headers['Set-Cookie']
    assert cookie.startswith('auth-token=tok')
    assert 'HttpOnly' in cookie
    assert 'SameSite=Lax' in cookie
    assert 'Secure' not in cookie
    assert f'Max-Age={7 * 24 * 60 * 60}' in cookie


def test_session_cookie_flags_in_production(app_config):
    app = create_app({**app_config, 'APP_ENV': 'production'})
    with app.test_request_context():
        response = attach_session_cookie(Response(), 'tok')
    cookie = response.headers['Set-Cookie']
    assert 'HttpOnly' in cookie
    assert 'Secure' in cookie
    assert 'SameSite=Strict' in cookie


def test_empty_token_clears_cookie(app):
    with app.test_request_context():
        response = attach_session_cookie(Response(), '')
    cookie = response.headers['Set-Cookie']
    assert cookie.startswith('auth-token=;')
    assert '1970' in cookie
