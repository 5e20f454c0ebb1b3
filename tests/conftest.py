import pytest

from findriver.core.auth import CurrentUser, get_current_user
from findriver.main import app
from motor_fakes import USER_ID, FakeDatabase


@pytest.fixture
def mock_db():
    """In-memory stand-in for the Motor database."""
    return FakeDatabase()


@pytest.fixture
def authenticated():
    """Authenticate every request as USER_ID."""
    app.dependency_overrides[get_current_user] = lambda: CurrentUser(id=USER_ID)
    yield USER_ID
    app.dependency_overrides.clear()
