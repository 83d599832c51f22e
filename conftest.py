"""
Shared pytest fixtures: a throwaway sqlite database per test, lease factory,
engine and Flask test client
"""
import logging
from datetime import date

import pytest

from fleet_leasing import database
from fleet_leasing.app import create_app
from fleet_leasing.rent_schedule.core.processor import RentScheduleEngine


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, '_fleet_leasing', False):
            root_logger.removeHandler(handler)
            handler.close()


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = tmp_path / "fleet_leasing_test.db"
    monkeypatch.setattr(database, "DATABASE_PATH", str(path))
    database.init_database()
    return path


@pytest.fixture
def make_lease(db_path):
    counter = {'n': 0}

    def _make(start_date, rent_amount=3000, daily_late_fee=120, status='active', agreement_number=None):
        counter['n'] += 1
        return database.save_lease({
            'agreement_number': agreement_number or f"AGR-{counter['n']:04d}",
            'rent_amount': rent_amount,
            'start_date': start_date,
            'daily_late_fee': daily_late_fee,
            'status': status,
        })
    return _make


@pytest.fixture
def engine(db_path):
    return RentScheduleEngine()


@pytest.fixture
def app(tmp_path, db_path):
    return create_app('testing', overrides={
        'DATABASE_PATH': db_path,
        'LOG_DIR': tmp_path / 'logs',
    })


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def june_10():
    return date(2024, 6, 10)
