import pytest

from billsignal.db.repositories import BillRepository, FetchLogRepository, PredictionRepository
from billsignal.db.session import Database

from fakes import make_settings


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path / "billsignal.db")


@pytest.fixture
async def db(settings):
    database = Database(settings.db)
    await database.initialize()
    await database.create_tables()
    yield database
    await database.close()


@pytest.fixture
def bill_repo(db):
    return BillRepository(db)


@pytest.fixture
def prediction_repo(db):
    return PredictionRepository(db)


@pytest.fixture
def fetch_log_repo(db):
    return FetchLogRepository(db)
