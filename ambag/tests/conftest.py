"""
Shared fixtures: an in-memory database and an API client bound to it.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
import ambag.models  # noqa: F401
from ambag.db.base import Base
from ambag.db.session import get_db
from ambag.main import app
from ambag.models.user import User
from ambag.services.group_service import add_member, create_group


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session
    
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_group(db_session):
    """Create users with the given names and a group containing all of them."""
    def _make_group(*names, group_name="Trip"):
        users = {}
        for name in names:
            user = User(email=f"{name.lower()}@example.com", full_name=name)
            db_session.add(user)
            db_session.flush()
            users[name] = user.id
        db_session.commit()
        
        group = create_group(group_name, users[names[0]], db_session)
        for name in names[1:]:
            add_member(group.id, users[name], db_session)
        return group, users
    
    return _make_group
