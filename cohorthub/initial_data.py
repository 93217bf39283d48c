# cohorthub/initial_data.py

import asyncio
import csv
import logging
from pathlib import Path
from typing import List, Optional

from sqlalchemy.orm import Session

from cohorthub.database import SessionLocal, engine
from cohorthub.models.base import Base
from cohorthub.models.problem_statement import ProblemStatement
from cohorthub.crud.user import create_user as crud_create_user, get_user_by_username
from cohorthub.crud.problem_statement import create_problem_statement
from cohorthub.core.settings import settings
from cohorthub.core.exceptions import ValidationError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("CohortHub.InitialData")

def create_initial_admin_user(db: Session) -> None:
    logger.info("Checking if initial admin user needs to be created...")
    username = settings.FIRST_ADMIN_USERNAME
    admin_user = get_user_by_username(db, username=username)
    if admin_user:
        logger.info(f"Admin user '{username}' already exists. No action taken.")
        return
    logger.info(f"Admin user '{username}' not found. Creating...")
    try:
        crud_create_user(db, {
            "username": username,
            "email": settings.FIRST_ADMIN_EMAIL,
            "full_name": "Cohort Admin",
            "role": "admin",
            "is_superuser": True,
        })
        logger.info(f"Admin user '{username}' created successfully.")
    except ValidationError as e:
        logger.error(f"Failed to create admin user: {e}")

def read_problem_statements_csv(path: Path) -> List[dict]:
    """
    Колонки: ID, Title, Problem Statement, Domain, Suggested Technologies, Topic.
    Строки без названия или описания пропускаются.
    """
    rows = []
    with path.open(newline="", encoding="utf-8") as f:
        for record in csv.DictReader(f):
            title = (record.get("Title") or "").strip()
            description = (record.get("Problem Statement") or "").strip()
            if not title or not description:
                continue
            external_id = (record.get("ID") or "").strip()
            rows.append({
                "external_id": int(external_id) if external_id.isdigit() else None,
                "title": title,
                "description": description,
                "domain": (record.get("Domain") or "").strip(),
                "suggested_technologies": (record.get("Suggested Technologies") or "").strip() or None,
                "topic": (record.get("Topic") or "").strip() or None,
            })
    logger.info(f"Parsed {len(rows)} problem statements from {path}")
    return rows

def import_problem_statements(db: Session, path: Optional[str]) -> int:
    if not path:
        return 0
    csv_path = Path(path)
    if not csv_path.exists():
        logger.warning(f"Problem statements file {csv_path} not found, skipping import")
        return 0
    known = {row.external_id for row in db.query(ProblemStatement.external_id) if row.external_id is not None}
    created = 0
    for data in read_problem_statements_csv(csv_path):
        if data["external_id"] is not None and data["external_id"] in known:
            continue
        create_problem_statement(db, data)
        created += 1
    logger.info(f"Imported {created} new problem statements")
    return created

async def main() -> None:
    logger.info("Initializing initial data (tables, admin user, problem statements)...")
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        create_initial_admin_user(db)
        import_problem_statements(db, settings.PROBLEM_STATEMENTS_CSV)
    finally:
        db.close()
    logger.info("Finished initial data setup.")

if __name__ == "__main__":
    from dotenv import load_dotenv
    load_dotenv()

    asyncio.run(main())
