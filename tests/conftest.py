import os

# module-level app in app.py is built on import
os.environ.setdefault("DISABLE_MONGO", "1")
os.environ.setdefault("BCRYPT_LOG_ROUNDS", "4")
os.environ.setdefault("PROFILE_FETCH_DELAY", "0")
os.environ.setdefault("NFT_CONTRACT_ADDRESS", "")

import mongomock
import pytest

from app import create_app
from agrichain.mongo import use_database
from agrichain.services.auth_service import AuthService
from agrichain.services.database_service import DatabaseService
from agrichain.state.app_state import AppState
from agrichain.state.sessions import sessions

JWT_SECRET = "test-secret"

FARMER = {
    "firstName": "Ramesh",
    "lastName": "Patil",
    "email": "ramesh@example.com",
    "phone": "9876543210",
    "password": "Harvest2025",
    "confirmPassword": "Harvest2025",
    "userType": "farmer",
    "agreeToTerms": True,
    "agreeToPrivacy": True,
}

BUYER = {
    **FARMER,
    "firstName": "Asha",
    "lastName": "Rao",
    "email": "asha@example.com",
    "phone": "9123456780",
    "userType": "buyer",
}


@pytest.fixture
def db():
    database = mongomock.MongoClient()["agrichain_test"]
    use_database(database)
    yield database
    sessions.clear()
    use_database(None)


@pytest.fixture
def database_service(db):
    return DatabaseService(db)


@pytest.fixture
def auth_service(database_service):
    return AuthService(database_service=database_service)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def app_state(auth_service, database_service, sleeps):
    state = AppState(
        auth_service,
        database_service,
        profile_fetch_attempts=3,
        profile_fetch_delay=0.5,
        sleep=sleeps.append,
    )
    state.initialize()
    yield state
    state.dispose()


def sign_up_farmer(state, email="ramesh@example.com"):
    assert state.sign_up(
        first_name="Ramesh",
        last_name="Patil",
        email=email,
        password="Harvest2025",
        user_type="farmer",
        phone="9876543210",
    ), state.error
    return state.current_user


@pytest.fixture
def app(db, tmp_path):
    flask_app = create_app({
        "TESTING": True,
        "DISABLE_MONGO": True,
        "JWT_SECRET_KEY": JWT_SECRET,
        "BCRYPT_LOG_ROUNDS": 4,
        "PROFILE_FETCH_DELAY": 0,
        "PREFERENCES_PATH": str(tmp_path / "preferences.json"),
        "NFT_CONTRACT_ADDRESS": "",
    })
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def signup(client):
    def _signup(payload=FARMER, **overrides):
        resp = client.post("/auth/signup", json={**payload, **overrides})
        assert resp.status_code == 201, resp.get_json()
        body = resp.get_json()
        return body, auth_header(body["access_token"])

    return _signup
