import pytest
from fastapi.testclient import TestClient

from marketplace.core.config import Settings
from marketplace.main import create_app


@pytest.fixture
def app(engine, clock, dispatcher, realtime):
    return create_app(
        Settings(ENVIRONMENT="testing"),
        engine=engine,
        clock=clock,
        dispatcher=dispatcher,
        realtime=realtime,
    )


@pytest.fixture
def api(app, db_session, provider, client, service):
    # requests open their own sessions on the shared connection
    db_session.close()
    return TestClient(app)


def as_user(user):
    return {"X-User-Id": user.id}
