import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from pymongo.errors import OperationFailure

from jobconnect.services import db
from jobconnect.utils.exceptions import ConfigurationError
from tests.fakes import FakeCollection


@pytest.fixture
def collections():
    jobs, applications, sessions = FakeCollection("jobs"), FakeCollection("applications"), FakeCollection("sessions")
    with patch.object(db, 'jobs_coll', jobs), \
            patch.object(db, 'applications_coll', applications), \
            patch.object(db, 'sessions_coll', sessions):
        yield jobs, applications, sessions


class TestInitIndexes:
    """Startup index creation"""

    def test_creates_unique_application_index(self, collections):
        _, applications, _ = collections
        asyncio.run(db.init_indexes())
        assert ("applicant_user_id", "job_id") in applications.unique_keys

    def test_optional_index_failure_only_logs(self, collections):
        jobs, applications, _ = collections
        jobs.create_index = AsyncMock(side_effect=OperationFailure("not authorized on job_portal"))

        asyncio.run(db.init_indexes())

        assert ("applicant_user_id", "job_id") in applications.unique_keys

    def test_existing_index_is_not_an_error(self, collections):
        _, applications, _ = collections
        applications.create_index = AsyncMock(
            side_effect=OperationFailure("Index with name: applicant_user_id_1_job_id_1 already exists")
        )
        asyncio.run(db.init_indexes())

    def test_duplicate_guard_failure_raises(self, collections):
        """Without the applicant/job unique index duplicates are possible, so startup must stop"""
        _, applications, _ = collections
        applications.create_index = AsyncMock(
            side_effect=OperationFailure("E11000 duplicate key error collection: job_portal.applications")
        )

        with pytest.raises(ConfigurationError) as exc:
            asyncio.run(db.init_indexes())

        assert exc.value.details["config_key"] == "applications.(applicant_user_id, job_id)"
        assert isinstance(exc.value.cause, OperationFailure)


class TestLifespan:
    def test_configuration_error_aborts_startup(self):
        from jobconnect.main import app, lifespan

        async def start():
            async with lifespan(app):
                pass

        failing = AsyncMock(side_effect=ConfigurationError("Required index missing"))
        with patch('jobconnect.services.db.init_indexes', failing):
            with pytest.raises(ConfigurationError):
                asyncio.run(start())

    def test_other_index_errors_do_not_abort(self):
        from jobconnect.main import app, lifespan

        entered = []

        async def start():
            async with lifespan(app):
                entered.append(True)

        with patch('jobconnect.services.db.init_indexes', AsyncMock(side_effect=RuntimeError("server unreachable"))):
            asyncio.run(start())

        assert entered == [True]
