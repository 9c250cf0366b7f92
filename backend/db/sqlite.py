"""SQLite database operations for the finance tracker."""

import logging
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from uuid import uuid4

from backend.config import settings
from backend.models import Budget, BudgetPeriod, Category, CategoryCreate, Transaction, TransactionType

logger = logging.getLogger(__name__)

# SQL schema
SCHEMA = """
CREATE TABLE IF NOT EXISTS categories (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    name TEXT NOT NULL,
    type TEXT NOT NULL CHECK (type IN ('INCOME', 'EXPENSE')),
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (owner_id, name, type)
);

CREATE INDEX IF NOT EXISTS idx_categories_owner ON categories(owner_id);

CREATE TABLE IF NOT EXISTS transactions (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    date TEXT NOT NULL,
    description TEXT NOT NULL,
    amount REAL NOT NULL,
    type TEXT NOT NULL CHECK (type IN ('INCOME', 'EXPENSE')),
    category_id TEXT REFERENCES categories(id) ON DELETE SET NULL,
    currency TEXT NOT NULL DEFAULT 'USD',
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_transactions_owner_date ON transactions(owner_id, date);
CREATE INDEX IF NOT EXISTS idx_transactions_category ON transactions(category_id);

CREATE TABLE IF NOT EXISTS budgets (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    category_id TEXT NOT NULL REFERENCES categories(id) ON DELETE CASCADE,
    amount REAL NOT NULL CHECK (amount > 0),
    period TEXT NOT NULL CHECK (period IN ('WEEKLY', 'MONTHLY', 'YEARLY')),
    start_date TEXT NOT NULL,
    end_date TEXT NOT NULL,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (owner_id, category_id, period)
);

CREATE INDEX IF NOT EXISTS idx_budgets_owner ON budgets(owner_id);
"""

TRANSACTION_COLUMNS = "id, owner_id, date, description, amount, type, category_id, currency"
BUDGET_COLUMNS = "id, owner_id, category_id, amount, period, start_date, end_date"


class Database:
    """SQLite database manager."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or settings.db_path
        if db_path is None:
            settings.ensure_directories()
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the database schema."""
        with self._get_connection() as conn:
            conn.executescript(SCHEMA)
            conn.commit()

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with foreign keys enforced."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
        finally:
            conn.close()

    # ==================== CATEGORIES ====================

    def add_category(self, owner_id: str, category: CategoryCreate) -> Category:
        """Create a category. Raises ValueError if the name is already taken."""
        created = Category(id=str(uuid4()), owner_id=owner_id, name=category.name, type=category.type)
        with self._get_connection() as conn:
            try:
                conn.execute(
                    "INSERT INTO categories (id, owner_id, name, type) VALUES (?, ?, ?, ?)",
                    (created.id, owner_id, created.name, created.type.value),
                )
                conn.commit()
            except sqlite3.IntegrityError:
                raise ValueError("Category with this name already exists")
        return created

    def find_categories_by_owner(self, owner_id: str) -> list[Category]:
        """Get an owner's categories in the order they were created."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                "SELECT id, owner_id, name, type FROM categories WHERE owner_id = ? ORDER BY rowid",
                (owner_id,),
            )
            return [self._row_to_category(row) for row in cursor.fetchall()]

    def get_category(self, owner_id: str, category_id: str) -> Category | None:
        """Get one of an owner's categories by id."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                "SELECT id, owner_id, name, type FROM categories WHERE id = ? AND owner_id = ?",
                (category_id, owner_id),
            )
            row = cursor.fetchone()
            return self._row_to_category(row) if row else None

    def rename_category(self, owner_id: str, category_id: str, name: str) -> Category | None:
        """Rename a category. Raises ValueError if the new name is already taken."""
        with self._get_connection() as conn:
            try:
                cursor = conn.execute(
                    "UPDATE categories SET name = ? WHERE id = ? AND owner_id = ?",
                    (name, category_id, owner_id),
                )
                conn.commit()
            except sqlite3.IntegrityError:
                raise ValueError("Category with this name already exists")
        if cursor.rowcount == 0:
            return None
        return self.get_category(owner_id, category_id)

    def delete_category(self, owner_id: str, category_id: str) -> bool:
        """
        Delete a category.

        Its transactions become uncategorized and its budgets are removed.
        Returns False if the owner has no such category.
        """
        with self._get_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM categories WHERE id = ? AND owner_id = ?",
                (category_id, owner_id),
            )
            conn.commit()
            return cursor.rowcount > 0

    def _row_to_category(self, row: sqlite3.Row) -> Category:
        """Convert a database row to a Category model."""
        return Category(
            id=row["id"],
            owner_id=row["owner_id"],
            name=row["name"],
            type=TransactionType(row["type"]),
        )

    # ==================== TRANSACTIONS ====================

    def find_transaction_by_owner_date_amount_prefix(
        self, owner_id: str, txn_date: date, amount: float, description_prefix: str
    ) -> Transaction | None:
        """
        Find a stored transaction with the same date and amount whose
        description starts with ``description_prefix``.

        The prefix comparison is case-sensitive (LIKE would not be).
        """
        with self._get_connection() as conn:
            cursor = conn.execute(
                f"""
                SELECT {TRANSACTION_COLUMNS}
                FROM transactions
                WHERE owner_id = ? AND date = ? AND amount = ?
                  AND substr(description, 1, ?) = ?
                LIMIT 1
                """,
                (owner_id, txn_date.isoformat(), amount, len(description_prefix), description_prefix),
            )
            row = cursor.fetchone()
            return self._row_to_transaction(row) if row else None

    def bulk_insert_transactions(self, transactions: list[Transaction]) -> int:
        """
        Insert transactions in a single SQL transaction.

        Either every row is written or none is. Raises ValueError if a row
        references a category its owner does not have; sqlite3 errors
        propagate. Returns the number of rows created.
        """
        if not transactions:
            return 0

        rows = [self._transaction_values(txn) for txn in transactions]
        with self._get_connection() as conn:
            with conn:  # Commits on success, rolls back on any error
                conn.execute("BEGIN IMMEDIATE")
                self._check_category_owners(conn, transactions)
                conn.executemany(
                    f"INSERT INTO transactions ({TRANSACTION_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    rows,
                )
        logger.info(f"Inserted {len(rows)} transactions")
        return len(rows)

    def get_transaction(self, owner_id: str, transaction_id: str) -> Transaction | None:
        """Get one of an owner's transactions by id."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                f"SELECT {TRANSACTION_COLUMNS} FROM transactions WHERE id = ? AND owner_id = ?",
                (transaction_id, owner_id),
            )
            row = cursor.fetchone()
            return self._row_to_transaction(row) if row else None

    def update_transaction(self, transaction: Transaction) -> bool:
        """
        Overwrite a stored transaction with the given state.

        Raises ValueError if the new category belongs to someone else.
        Returns False if the owner has no transaction with this id.
        """
        txn_id, owner_id, *values = self._transaction_values(transaction)
        with self._get_connection() as conn:
            with conn:
                conn.execute("BEGIN IMMEDIATE")
                self._check_category_owners(conn, [transaction])
                cursor = conn.execute(
                    """
                    UPDATE transactions
                    SET date = ?, description = ?, amount = ?, type = ?, category_id = ?, currency = ?
                    WHERE id = ? AND owner_id = ?
                    """,
                    (*values, txn_id, owner_id),
                )
            return cursor.rowcount > 0

    def delete_transaction(self, owner_id: str, transaction_id: str) -> bool:
        """Delete a transaction. Returns False if the owner has no such transaction."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM transactions WHERE id = ? AND owner_id = ?",
                (transaction_id, owner_id),
            )
            conn.commit()
            return cursor.rowcount > 0

    def _check_category_owners(self, conn: sqlite3.Connection, transactions: list[Transaction]) -> None:
        """Raise ValueError unless every referenced category belongs to the row's owner."""
        referenced = {(txn.owner_id, txn.category_id) for txn in transactions if txn.category_id}
        for owner_id, category_id in referenced:
            cursor = conn.execute(
                "SELECT 1 FROM categories WHERE id = ? AND owner_id = ?",
                (category_id, owner_id),
            )
            if cursor.fetchone() is None:
                raise ValueError(f"Category not found: {category_id}")

    @staticmethod
    def _transaction_values(txn: Transaction) -> tuple:
        """Row values in TRANSACTION_COLUMNS order."""
        return (
            txn.id,
            txn.owner_id,
            txn.date.isoformat(),
            txn.description,
            txn.amount,
            txn.type.value,
            txn.category_id,
            txn.currency,
        )

    def get_transactions(self, owner_id: str, limit: int = 100) -> list[Transaction]:
        """Get an owner's transactions, newest first."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                f"""
                SELECT {TRANSACTION_COLUMNS}
                FROM transactions WHERE owner_id = ?
                ORDER BY date DESC, rowid DESC
                LIMIT ?
                """,
                (owner_id, limit),
            )
            return [self._row_to_transaction(row) for row in cursor.fetchall()]

    def get_transaction_count(self) -> int:
        """Get total number of transactions."""
        with self._get_connection() as conn:
            cursor = conn.execute("SELECT COUNT(*) as count FROM transactions")
            return cursor.fetchone()["count"]

    def _row_to_transaction(self, row: sqlite3.Row) -> Transaction:
        """Convert a database row to a Transaction model."""
        return Transaction(
            id=row["id"],
            owner_id=row["owner_id"],
            date=date.fromisoformat(row["date"]),
            description=row["description"],
            amount=row["amount"],
            type=TransactionType(row["type"]),
            category_id=row["category_id"],
            currency=row["currency"],
        )

    # ==================== BUDGETS ====================

    def add_budget(self, budget: Budget) -> Budget:
        """Create a budget. Raises ValueError if the category already has one for this period."""
        with self._get_connection() as conn:
            try:
                conn.execute(
                    f"INSERT INTO budgets ({BUDGET_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                    self._budget_values(budget),
                )
                conn.commit()
            except sqlite3.IntegrityError:
                raise ValueError("Budget already exists for this category and period")
        return budget

    def find_budgets_by_owner(self, owner_id: str) -> list[Budget]:
        """Get an owner's budgets, newest first."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                f"SELECT {BUDGET_COLUMNS} FROM budgets WHERE owner_id = ? ORDER BY rowid DESC",
                (owner_id,),
            )
            return [self._row_to_budget(row) for row in cursor.fetchall()]

    def get_budget(self, owner_id: str, budget_id: str) -> Budget | None:
        """Get one of an owner's budgets by id."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                f"SELECT {BUDGET_COLUMNS} FROM budgets WHERE id = ? AND owner_id = ?",
                (budget_id, owner_id),
            )
            row = cursor.fetchone()
            return self._row_to_budget(row) if row else None

    def update_budget(self, budget: Budget) -> bool:
        """
        Overwrite a stored budget's amount, period and dates.

        Raises ValueError if the new period clashes with another budget.
        """
        with self._get_connection() as conn:
            try:
                cursor = conn.execute(
                    """
                    UPDATE budgets SET amount = ?, period = ?, start_date = ?, end_date = ?
                    WHERE id = ? AND owner_id = ?
                    """,
                    (
                        budget.amount,
                        budget.period.value,
                        budget.start_date.isoformat(),
                        budget.end_date.isoformat(),
                        budget.id,
                        budget.owner_id,
                    ),
                )
                conn.commit()
            except sqlite3.IntegrityError:
                raise ValueError("Budget already exists for this category and period")
            return cursor.rowcount > 0

    def delete_budget(self, owner_id: str, budget_id: str) -> bool:
        """Delete a budget. Returns False if the owner has no such budget."""
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM budgets WHERE id = ? AND owner_id = ?", (budget_id, owner_id))
            conn.commit()
            return cursor.rowcount > 0

    @staticmethod
    def _budget_values(budget: Budget) -> tuple:
        return (
            budget.id,
            budget.owner_id,
            budget.category_id,
            budget.amount,
            budget.period.value,
            budget.start_date.isoformat(),
            budget.end_date.isoformat(),
        )

    def _row_to_budget(self, row: sqlite3.Row) -> Budget:
        """Convert a database row to a Budget model."""
        return Budget(
            id=row["id"],
            owner_id=row["owner_id"],
            category_id=row["category_id"],
            amount=row["amount"],
            period=BudgetPeriod(row["period"]),
            start_date=date.fromisoformat(row["start_date"]),
            end_date=date.fromisoformat(row["end_date"]),
        )


# Global database instance
db = Database()
