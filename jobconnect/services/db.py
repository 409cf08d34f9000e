import motor.motor_asyncio
from pymongo import ASCENDING, DESCENDING

from jobconnect.utils.config import get_settings
from jobconnect.utils.exceptions import ConfigurationError
from jobconnect.utils.logging_config import get_logger

logger = get_logger(__name__)

settings = get_settings()

logger.info(f"Initializing MongoDB connection to database: {settings.db_name}")

try:
    client = motor.motor_asyncio.AsyncIOMotorClient(settings.mongo_details)
    db = client[settings.db_name]
    logger.info("MongoDB client initialized successfully")
except Exception as e:
    logger.error(f"Failed to initialize MongoDB client: {e}")
    raise

# Collections
jobs_coll = db["jobs"]
applications_coll = db["applications"]
sessions_coll = db["sessions"]


async def _create_index(coll, keys, label: str, required: bool = False, **kwargs):
    try:
        await coll.create_index(keys, **kwargs)
        logger.debug(f"Created index on {coll.name}.{label}")
    except Exception as e:
        if "already exists" in str(e).lower():
            logger.debug(f"Index on {coll.name}.{label} already exists")
        elif required:
            logger.error(f"Required index on {coll.name}.{label} could not be created: {e}")
            raise ConfigurationError(
                f"Required index {coll.name}.{label} could not be created",
                config_key=f"{coll.name}.{label}",
                cause=e,
            ) from e
        else:
            logger.warning(f"Could not create index on {coll.name}.{label}: {e}")


async def init_indexes():
    """Index initialization for collections.

    The (applicant_user_id, job_id) unique index is what stops two concurrent
    submissions from the same applicant creating two applications, so failing
    to create it raises ConfigurationError and startup aborts.
    """
    logger.info("Starting database index initialization")

    await _create_index(jobs_coll, [("job_id", ASCENDING)], "job_id", unique=True)
    await _create_index(jobs_coll, [("posted_by", ASCENDING)], "posted_by")
    await _create_index(jobs_coll, [("expired", ASCENDING), ("posted_on", DESCENDING)], "(expired, posted_on)")

    await _create_index(applications_coll, [("application_id", ASCENDING)], "application_id", unique=True)
    await _create_index(
        applications_coll,
        [("applicant_user_id", ASCENDING), ("job_id", ASCENDING)],
        "(applicant_user_id, job_id)",
        required=True,
        unique=True,
    )
    await _create_index(applications_coll, [("job_id", ASCENDING), ("ats_score", DESCENDING)], "(job_id, ats_score)")

    await _create_index(sessions_coll, [("token", ASCENDING)], "token", unique=True)

    logger.info("Database index initialization completed")
