"""Import problem packages from JSON files."""
import json
from pathlib import Path

from homework_portal.assignments import create_package
from homework_portal.models import MATH, READING


def read_package_file(file_path: str) -> dict:
    """Load and sanity-check a package file.

    Expected shape: {"name": ..., "assignment_type": "math"|"reading",
    "grade_level": ..., "story_text": ..., "problems": [...]}.
    """
    data = json.loads(Path(file_path).read_text(encoding="utf-8"))
    if not isinstance(data, dict) or not isinstance(data.get("problems"), list):
        raise ValueError(f"{file_path}: expected an object with a 'problems' list")
    kind = data.get("assignment_type", MATH)
    if kind not in (MATH, READING):
        raise ValueError(f"{file_path}: assignment_type must be math or reading")
    for number, problem in enumerate(data["problems"], 1):
        missing = {"question_text", "correct_answer"} - set(problem)
        if missing:
            raise ValueError(f"{file_path}: problem {number} is missing {', '.join(sorted(missing))}")
    return data


def import_package_file(db_path: str, parent_id: str | None, file_path: str) -> dict:
    """Create a package from a file. Multiple-choice answers are normalized on the way in."""
    data = read_package_file(file_path)
    name = data.get("name") or Path(file_path).stem
    package_id = create_package(
        db_path,
        parent_id,
        name,
        data["problems"],
        kind=data.get("assignment_type", MATH),
        grade_level=data.get("grade_level"),
        story_text=data.get("story_text"),
    )
    return {"package_id": package_id, "name": name, "problem_count": len(data["problems"])}
