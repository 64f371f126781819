# app/database.py
from pymongo import MongoClient
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError
from app.config import MONGO_URI, MONGO_DB_NAME, logger

# Global variables for MongoDB client and database
client = None
db = None


def initialize_db(uri=None, db_name=None):
    """
    Initializes the MongoDB connection.
    This function should be called once at server startup.

    Returns:
        bool: True when the server answered a ping, False otherwise.
    """
    global client, db
    uri = uri or MONGO_URI
    db_name = db_name or MONGO_DB_NAME
    try:
        logger.info("Attempting to connect to MongoDB...")
        client = MongoClient(uri, serverSelectionTimeoutMS=5000)  # 5 second timeout
        db = client[db_name]

        # Test the connection
        client.admin.command('ping')
        logger.info(f"MongoDB connection successful, using database '{db_name}'.")
        return True
    except ServerSelectionTimeoutError as e:
        logger.critical(f"MongoDB connection timeout: {e}")
        logger.error("Please check your network connection and MONGO_URI configuration.")
        return False
    except ConnectionFailure as e:
        logger.critical(f"MongoDB connection failed: {e}")
        return False


def close_db():
    global client, db
    if client is not None:
        client.close()
        logger.info("MongoDB connection closed.")
    client = None
    db = None
