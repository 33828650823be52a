import io
from unittest import mock

import pytest
from PIL import Image as PILImage

from artshare import create_app, db

TEST_SECRET = 'test-secret-with-enough-length-for-hs256'


@pytest.fixture()
def app_config(tmp_path):
    return {
        'TESTING': True,
        'JWT_SECRET_KEY': TEST_SECRET,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'test.db'}",
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
        'PASSWORD_HASH_ITERATIONS': 1000,
        'LOG_LEVEL': 'DEBUG',
    }


@pytest.fixture()
def app(app_config):
    app = create_app(app_config)
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def reachable_links():
    """Every outbound link check answers 200."""
    with mock.patch('artshare.validation.requests.get') as mock_get:
        mock_get.return_value = mock.MagicMock(status_code=200)
        yield mock_get


def signup(client, email='artist@example.com', password='correct-horse', name='Ada'):
    return client.post('/users/signup', json={'name': name, 'email': email, 'password': password})


def login(client, email='artist@example.com', password='correct-horse'):
    return client.post('/users/login', json={'email': email, 'password': password})


@pytest.fixture()
def make_user(app):
    """Return a factory that signs up and logs in a user on a fresh client."""
    def factory(email='artist@example.com', password='correct-horse', name='Ada'):
        user_client = app.test_client()
        response = signup(user_client, email=email, password=password, name=name)
        assert response.status_code == 201
        response = login(user_client, email=email, password=password)
        assert response.status_code == 200
        return user_client, response.get_json()['user']
    return factory


@pytest.fixture()
def auth_client(make_user):
    user_client, _ = make_user()
    return user_client


def png_bytes(size=(4, 4), color=(200, 30, 30)):
    buffer = io.BytesIO()
    PILImage.new('RGB', size, color).save(buffer, format='PNG')
    buffer.seek(0)
    return buffer


def image_payload(**overrides):
    payload = {
        'artistName': 'A',
        'name': 'Sunset',
        'price': '10',
        'description': 'x',
        'category': 'Painting',
        'imageLink': 'https://ok.test/1.png',
    }
    payload.update(overrides)
    return payload
