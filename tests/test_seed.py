from homework_portal.db import init_db, get_connection
from homework_portal.seed import is_seeded, seed_all


def test_is_seeded(tmp_db):
    init_db(tmp_db)
    assert not is_seeded(tmp_db)
    seed_all(tmp_db)
    assert is_seeded(tmp_db)


def test_seed_all_creates_demo_family(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    conn = get_connection(tmp_db)
    assert conn.execute("SELECT COUNT(*) FROM children").fetchone()[0] == 1
    assert conn.execute("SELECT COUNT(*) FROM package_problems").fetchone()[0] == 3
    assignments = conn.execute("SELECT * FROM assignments ORDER BY title").fetchall()
    assert [a["title"] for a in assignments] == ["Fractions practice", "The lighthouse keeper", "Times tables"]
    # Only the fractions assignment is built from the package
    assert sum(1 for a in assignments if a["package_id"]) == 1
    assert conn.execute("SELECT COUNT(*) FROM math_problems").fetchone()[0] == 2
    assert conn.execute("SELECT COUNT(*) FROM reading_questions").fetchone()[0] == 2
    # Every child starts with a wallet
    assert conn.execute("SELECT balance FROM child_coins").fetchone()[0] == 0
    conn.close()


def test_seed_all_idempotent(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    seed_all(tmp_db)  # second call should be no-op
    conn = get_connection(tmp_db)
    assert conn.execute("SELECT COUNT(*) FROM parents").fetchone()[0] == 1
    assert conn.execute("SELECT COUNT(*) FROM assignments").fetchone()[0] == 3
    conn.close()
