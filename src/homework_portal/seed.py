"""Seed the database with a demo family and assignments."""
import json
from pathlib import Path

from homework_portal.assignments import create_assignment, create_child, create_package, create_parent
from homework_portal.db import get_connection

CONTENT_DIR = Path(__file__).parent / "content"


def is_seeded(db_path: str) -> bool:
    """Check whether the database already has a family."""
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM parents").fetchone()[0]
    conn.close()
    return count > 0


def seed_all(db_path: str) -> None:
    """Create the demo parent, child, package and assignments from demo.json."""
    if is_seeded(db_path):
        return
    data = json.loads((CONTENT_DIR / "demo.json").read_text(encoding="utf-8"))
    parent_id = create_parent(db_path, data["parent"]["name"])
    child_id = create_child(db_path, parent_id, data["child"]["name"], data["child"].get("grade_level"))

    pkg = data["package"]
    package_id = create_package(
        db_path, parent_id, pkg["name"], pkg["problems"],
        kind=pkg["assignment_type"], grade_level=pkg.get("grade_level"),
    )
    for assignment in data["assignments"]:
        create_assignment(
            db_path,
            parent_id,
            child_id,
            assignment["assignment_type"],
            assignment["title"],
            problems=assignment.get("problems"),
            package_id=package_id if assignment.get("use_package") else None,
        )
