import motor.motor_asyncio
from pymongo import ASCENDING, DESCENDING

from jobmatch.config import get_settings
from jobmatch.utils.logging_config import get_logger

logger = get_logger(__name__)

# Connection settings (from env or .env)
settings = get_settings()

logger.info(f"Initializing MongoDB connection to database: {settings.db_name}")

# Initialize client; no connection is made until the first query
try:
    client = motor.motor_asyncio.AsyncIOMotorClient(settings.mongo_details)
    db = client[settings.db_name]
    logger.info("MongoDB client initialized successfully")
except Exception as e:
    logger.error(f"Failed to initialize MongoDB client: {e}")
    raise

# Collections
jobs_coll = db["jobs"]
job_seekers_coll = db["job_seekers"]
training_data_coll = db["ai_training_data"]
feedback_coll = db["match_feedback"]


async def _create_index(coll, keys, **kwargs):
    """Create one index, tolerating an existing one"""
    try:
        await coll.create_index(keys, **kwargs)
        logger.debug(f"Created index on {coll.name}.{keys}")
    except Exception as e:
        if "already exists" in str(e).lower():
            logger.debug(f"Index on {coll.name}.{keys} already exists")
        else:
            logger.warning(f"Could not create index on {coll.name}.{keys}: {e}")


async def init_indexes():
    """Index initialization for collections."""
    logger.info("Starting database index initialization")

    # Jobs collection: active pool ordered by posted_at, plus the trending-skill window
    await _create_index(jobs_coll, [("status", ASCENDING), ("posted_at", DESCENDING)])
    await _create_index(jobs_coll, [("created_at", DESCENDING)])

    # Job seekers collection: available candidates, most recently updated first
    await _create_index(job_seekers_coll, [("availability_status", ASCENDING), ("updated_at", DESCENDING)])

    # Training data: grouped by type, filtered by created_at
    await _create_index(training_data_coll, [("data_type", ASCENDING)])
    await _create_index(training_data_coll, [("created_at", ASCENDING)])

    # Feedback: looked up by match, filtered by created_at
    await _create_index(feedback_coll, [("match_id", ASCENDING)])
    await _create_index(feedback_coll, [("created_at", ASCENDING)])

    logger.info("Database index initialization completed")
