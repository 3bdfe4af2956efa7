"""
Check database connectivity and, for local development, create the tables.
Run once before starting the app: python scripts/init_db.py [--create]

Production deployments apply the Alembic revisions instead of --create.
"""

import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy.exc import SQLAlchemyError
from blogauth.config import settings
from blogauth.core.database import Base, SessionLocal, engine, ping_db


def main():
    url = settings.get_database_url()
    db = SessionLocal()
    try:
        ping_db(db)
        print(f"Database connection OK: {engine.url.render_as_string(hide_password=True)}")
    except SQLAlchemyError as e:
        print(f"Cannot connect to database {url}: {e}")
        sys.exit(1)
    finally:
        db.close()

    if "--create" in sys.argv[1:]:
        Base.metadata.create_all(bind=engine)
        print("Tables created.")

if __name__ == "__main__":
    main()
