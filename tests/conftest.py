import pytest
from unittest.mock import patch
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from services.harmonic_engine.loader import load_catalog_data
from src.auth.schemas import Role
from src.db.models import Base, Profile
from src.db.repository import AssessmentRepository
from tests.fixtures.sample_catalog import CATALOG_DATA
from tests.fixtures.sample_users import ADMIN, COACH, OTHER_COACH, OTHER_RESPONDENT, PARTNER, RESPONDENT, TRAINER


@pytest.fixture
def catalog():
    return load_catalog_data(CATALOG_DATA)


@pytest.fixture
def db_session():
    """In-memory SQLite database shared across threads for the duration of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    session = TestingSessionLocal()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def repository(db_session, catalog):
    """Repository over a database seeded with the test catalog and a few profiles."""
    db_session.add_all([
        Profile(id=PARTNER.id, email=PARTNER.email, role=Role.PARTNER),
        Profile(id=TRAINER.id, email=TRAINER.email, role=Role.TRAINER),
        Profile(id=COACH.id, email=COACH.email, role=Role.COACH, trainer_id=PARTNER.id),
        Profile(id=OTHER_COACH.id, email=OTHER_COACH.email, role=Role.COACH),
        Profile(id=ADMIN.id, email=ADMIN.email, role=Role.ADMIN),
        Profile(id=RESPONDENT.id, email=RESPONDENT.email, first_name="Ada", role=Role.RESPONDENT, coach_id=COACH.id),
        Profile(id=OTHER_RESPONDENT.id, email=OTHER_RESPONDENT.email, role=Role.RESPONDENT, trainer_id=TRAINER.id),
    ])
    db_session.commit()
    repo = AssessmentRepository(db_session)
    repo.seed_catalog(catalog)
    return repo


@pytest.fixture
def no_cache():
    """Disables the Redis results cache for the duration of a test."""
    with patch("src.assessment.results.cache_get_json", return_value=None) as mock_get, \
         patch("src.assessment.results.cache_set_json", return_value=False) as mock_set:
        yield mock_get, mock_set
