import pytest

from app import create_app
from models import db


@pytest.fixture
def app():
    app = create_app('testing')
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def storage(app):
    with app.app_context():
        yield app.extensions['cipher_storage']


def history_payload(**overrides):
    payload = {
        'operation': 'encrypt',
        'algorithm': 'aes',
        'mode': 'CBC',
        'keySize': '256',
        'inputLength': 13,
        'outputLength': 44,
        'processingTime': '0.002',
        'inputText': 'Hello, World!',
        'outputText': 'U2FsdGVkX1+abc',
    }
    payload.update(overrides)
    return payload
