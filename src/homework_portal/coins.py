"""Coin wallet and streak counter for each child."""
import sqlite3

from loguru import logger

from homework_portal.db import get_connection
from homework_portal.errors import InsufficientFunds, NotFound
from homework_portal.models import CoinAccount


def ensure_account(conn: sqlite3.Connection, child_id: str) -> None:
    conn.execute("INSERT OR IGNORE INTO child_coins (child_id) VALUES (?)", (child_id,))


def get_account(conn: sqlite3.Connection, child_id: str) -> CoinAccount:
    row = conn.execute(
        "SELECT balance, total_earned, current_streak FROM child_coins WHERE child_id = ?",
        (child_id,),
    ).fetchone()
    if row is None:
        return CoinAccount(child_id=child_id)
    return CoinAccount(
        child_id=child_id,
        balance=row["balance"],
        total_earned=row["total_earned"],
        current_streak=row["current_streak"],
    )


def credit(conn: sqlite3.Connection, child_id: str, amount: int) -> None:
    """Pay out a reward and extend the streak."""
    if amount <= 0:
        raise ValueError(f"credit amount must be positive, got {amount}")
    ensure_account(conn, child_id)
    conn.execute(
        """UPDATE child_coins
        SET balance = balance + ?, total_earned = total_earned + ?, current_streak = current_streak + 1
        WHERE child_id = ?""",
        (amount, amount, child_id),
    )
    logger.debug(f"Credited {amount} coins to child {child_id}")


def penalize_streak(conn: sqlite3.Connection, child_id: str) -> None:
    """Reset the streak after a question ends without a correct answer."""
    conn.execute("UPDATE child_coins SET current_streak = 0 WHERE child_id = ?", (child_id,))


def debit(conn: sqlite3.Connection, child_id: str, amount: int) -> None:
    cursor = conn.execute(
        "UPDATE child_coins SET balance = balance - ? WHERE child_id = ? AND balance >= ?",
        (amount, child_id, amount),
    )
    if cursor.rowcount != 1:
        balance = get_account(conn, child_id).balance
        raise InsufficientFunds("Insufficient coins", balance=balance, required=amount)


def get_wallet(db_path: str, child_id: str) -> CoinAccount:
    conn = get_connection(db_path)
    exists = conn.execute("SELECT 1 FROM children WHERE id = ?", (child_id,)).fetchone()
    account = get_account(conn, child_id)
    conn.close()
    if not exists:
        raise NotFound("Child not found", child_id=child_id)
    return account
