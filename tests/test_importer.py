# tests/test_importer.py
import json

import pytest

from homework_portal.db import get_connection
from homework_portal.importer import import_package_file, read_package_file


def _write(tmp_path, data, name="package.json"):
    f = tmp_path / name
    f.write_text(json.dumps(data))
    return str(f)


def test_read_package_file(tmp_path):
    path = _write(tmp_path, {"name": "Sums", "problems": [{"question_text": "1+1", "correct_answer": "2"}]})
    data = read_package_file(path)
    assert data["name"] == "Sums"


def test_read_package_file_rejects_bad_shape(tmp_path):
    with pytest.raises(ValueError):
        read_package_file(_write(tmp_path, [1, 2]))
    with pytest.raises(ValueError):
        read_package_file(_write(tmp_path, {"problems": [], "assignment_type": "art"}))
    with pytest.raises(ValueError, match="problem 2 is missing correct_answer"):
        read_package_file(_write(tmp_path, {"problems": [
            {"question_text": "a", "correct_answer": "1"},
            {"question_text": "b"},
        ]}))


def test_import_package_file(tmp_path, family):
    path = _write(tmp_path, {
        "assignment_type": "reading",
        "story_text": "Once upon a time.",
        "problems": [
            {"question_text": "Who? A: Mia, B: Leo", "correct_answer": "Leo"},
            {"question_text": "Where?", "correct_answer": "a) home", "options": ["a) home", "b) school"]},
        ],
    }, name="story.json")
    result = import_package_file(family["db"], family["parent_id"], path)
    assert result["name"] == "story"
    assert result["problem_count"] == 2

    conn = get_connection(family["db"])
    package = conn.execute("SELECT * FROM packages WHERE id = ?", (result["package_id"],)).fetchone()
    assert package["story_text"] == "Once upon a time."
    assert package["problem_count"] == 2
    problems = conn.execute(
        "SELECT * FROM package_problems WHERE package_id = ? ORDER BY problem_number", (result["package_id"],)
    ).fetchall()
    conn.close()
    # Multiple-choice answers are stored as option letters
    assert [p["correct_answer"] for p in problems] == ["B", "A"]
    assert json.loads(problems[0]["options"]) == ["A: Mia", "B: Leo"]
    assert all(p["answer_type"] == "multiple_choice" for p in problems)
