from config import Settings
from database.database import Base, create_db_engine
from models import models  # noqa: F401

def init_database():
    """Initialize the database by creating all tables."""
    settings = Settings.from_env()
    print(f"Creating database tables in {settings.database_url}...")
    Base.metadata.create_all(bind=create_db_engine(settings.database_url))
    print("Database tables created successfully!")

if __name__ == "__main__":
    init_database()
