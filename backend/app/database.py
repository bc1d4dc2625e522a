# /backend/app/database.py

import logging
from motor.motor_asyncio import AsyncIOMotorClient
from app.config import settings

logger = logging.getLogger(__name__)

# Category destinations
HEALTH_RECORDS = "health_records"
DENTAL_RECORDS = "dental_records"
VISION_RECORDS = "vision_records"
IMMUNIZATION_RECORDS = "immunization_records"
MEDICATIONS = "medications"

UPLOAD_SESSIONS = "upload_sessions"

class Database:
    client: AsyncIOMotorClient = None

db = Database()

async def connect_to_mongo():
    """Connect to MongoDB"""
    db.client = AsyncIOMotorClient(settings.MONGODB_URL)
    logger.info(f"Connected to MongoDB at {settings.MONGODB_URL}")

async def close_mongo_connection():
    """Close MongoDB connection"""
    if db.client is not None:
        db.client.close()
    logger.info("Closed MongoDB connection")

def get_database():
    """Get database instance"""
    return db.client[settings.DATABASE_NAME]
