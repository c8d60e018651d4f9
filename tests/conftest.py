import os
from typing import Generator

os.environ.setdefault("AUTO_CREATE_TABLES", "false")

import pytest
from unittest.mock import AsyncMock
from sqlalchemy import create_engine, StaticPool
from sqlalchemy.orm import sessionmaker, Session
from fastapi.testclient import TestClient
from faker import Faker

from main import app
import models  # noqa: F401
from models import Fieldset, Field, Location
from models.base import Base
from db.session import get_db
from services.field_type_registry_service import (
    FieldTypeRegistry,
    create_default_field_type_registry,
    get_field_type_registry,
)
from services.location_rule_service import (
    HostCatalog,
    LocationRuleEvaluator,
    create_default_location_evaluator,
    get_location_evaluator,
)
from services.openfields_client import OpenFieldsClient

fake = Faker()

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={
        "check_same_thread": False,
    },
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a test database session."""
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def registry() -> FieldTypeRegistry:
    """Fresh field type registry with the built-in types."""
    return create_default_field_type_registry()


@pytest.fixture
def evaluator() -> LocationRuleEvaluator:
    """Location evaluator wired to the default host catalog."""
    return create_default_location_evaluator(HostCatalog())


@pytest.fixture(scope="function")
def client(
    db_session: Session,
    registry: FieldTypeRegistry,
    evaluator: LocationRuleEvaluator,
) -> Generator[TestClient, None, None]:
    """Create a test client with database session override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_field_type_registry] = lambda: registry
    app.dependency_overrides[get_location_evaluator] = lambda: evaluator
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def sample_fieldset(db_session: Session) -> Fieldset:
    """Create a sample fieldset for testing."""
    fieldset = Fieldset(
        title=fake.catch_phrase()[:100],
        field_key="hero",
        description=fake.sentence(),
        is_active=True,
        settings={},
        menu_order=0,
    )
    db_session.add(fieldset)
    db_session.commit()
    db_session.refresh(fieldset)
    return fieldset


@pytest.fixture
def sample_field(db_session: Session, sample_fieldset: Fieldset) -> Field:
    """Create a sample text field for testing."""
    field = Field(
        fieldset_id=sample_fieldset.id,
        label="Title",
        name="title",
        type="text",
        placeholder="Enter a title",
        required=True,
        field_config={"max_length": 80},
        menu_order=0,
    )
    db_session.add(field)
    db_session.commit()
    db_session.refresh(field)
    return field


@pytest.fixture
def sample_repeater(db_session: Session, sample_fieldset: Fieldset) -> Field:
    """Create a repeater with one sub field."""
    repeater = Field(
        fieldset_id=sample_fieldset.id,
        label="Slides",
        name="slides",
        type="repeater",
        field_config={"button_label": "Add Slide"},
        menu_order=1,
    )
    db_session.add(repeater)
    db_session.flush()

    db_session.add(Field(
        fieldset_id=sample_fieldset.id,
        parent_id=repeater.id,
        label="Caption",
        name="caption",
        type="text",
        field_config={},
        menu_order=0,
    ))
    db_session.commit()
    db_session.refresh(repeater)
    return repeater


@pytest.fixture
def sample_locations(db_session: Session, sample_fieldset: Fieldset) -> list[Location]:
    """Two groups: pages, or posts in the news category."""
    rows = [
        Location(fieldset_id=sample_fieldset.id, param="post_type", operator="==", value="page", group_id=0),
        Location(fieldset_id=sample_fieldset.id, param="post_type", operator="==", value="post", group_id=1),
        Location(fieldset_id=sample_fieldset.id, param="post_category", operator="==", value="news", group_id=1),
    ]
    db_session.add_all(rows)
    db_session.commit()
    db_session.refresh(sample_fieldset)
    return rows


@pytest.fixture
def mock_api_client() -> AsyncMock:
    """Mock editor API client."""
    return AsyncMock(spec=OpenFieldsClient)
