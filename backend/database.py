import os
from pathlib import Path
from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from utils.log import get_logger

# Path to backend/.env
BASE_DIR = Path(__file__).resolve().parent
env_path = BASE_DIR / ".env"

# Load .env (ONLY ONCE)
load_dotenv(dotenv_path=env_path)

logger = get_logger("database")

# Read environment variables
DB_USER = os.getenv("DB_USER")
DB_PASSWORD = os.getenv("DB_PASSWORD")
DB_HOST = os.getenv("DB_HOST", "127.0.0.1")
DB_PORT = os.getenv("DB_PORT", "3306")
DB_NAME = os.getenv("DB_NAME")
SQL_ECHO = os.getenv("SQL_ECHO", "0") == "1"


def build_database_url() -> str:
    # A full DATABASE_URL wins over the individual DB_* settings
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    if not DB_USER or not DB_NAME:
        logger.error("DB environment variables NOT loaded (DB_USER=%r, DB_NAME=%r)", DB_USER, DB_NAME)
    else:
        logger.info("Loaded DB config for %s on %s:%s", DB_NAME, DB_HOST, DB_PORT)

    return f"mysql+pymysql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"


def make_engine(url: str):
    connect_args = {}
    if url.startswith("sqlite"):
        # request threads share the pool
        connect_args["check_same_thread"] = False
    return create_engine(url, echo=SQL_ECHO, pool_pre_ping=True, connect_args=connect_args)


DATABASE_URL = build_database_url()

# SQLAlchemy Init
engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
