"""SQLite storage backend for GigFlow.

Provides:
- Durable storage for users, gigs, bids and notifications
- Multi-row transactions via ``transaction()``

A transaction opens with ``BEGIN IMMEDIATE``, taking the database write
lock before anything is read. Read-modify-write sequences spanning a gig and
all of its bids are therefore serialized against every other writer. Waiting
for the lock is bounded by the configured timeout; exceeding it raises
TransactionTimeoutError and nothing is written.
"""

import contextlib
import json
import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from ..accounts import User
from ..config import MarketplaceConfig
from ..errors import (
    ConflictError,
    GigflowError,
    StorageError,
    TransactionTimeoutError,
)
from ..marketplace.models import Bid, BidStatus, Gig, GigStatus
from ..notifications.models import Notification
from ..utils import parse_datetime, to_iso, utc_now
from .schema import init_db

logger = logging.getLogger(__name__)

DUPLICATE_BID_MESSAGE = "You have already placed a bid on this gig"
DUPLICATE_EMAIL_MESSAGE = "Email already registered"


@contextlib.contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    """Map sqlite3 exceptions onto the GigFlow error taxonomy."""
    try:
        yield
    except GigflowError:
        raise
    except sqlite3.IntegrityError as e:
        text = str(e)
        if "bids.gig_id" in text and "bids.bidder_id" in text:
            raise ConflictError(DUPLICATE_BID_MESSAGE) from e
        if "users.email" in text:
            raise ConflictError(DUPLICATE_EMAIL_MESSAGE) from e
        logger.error(f"Integrity error during {action}: {e}")
        raise StorageError(f"Integrity violation during {action}") from e
    except sqlite3.OperationalError as e:
        text = str(e).lower()
        if "locked" in text or "busy" in text:
            logger.warning(f"Timed out waiting for the store during {action}: {e}")
            raise TransactionTimeoutError(f"Timed out during {action}") from e
        logger.error(f"Storage error during {action}: {e}")
        raise StorageError(f"Storage failure during {action}") from e
    except sqlite3.Error as e:
        logger.error(f"Storage error during {action}: {e}")
        raise StorageError(f"Storage failure during {action}") from e


# =============================================================================
# Row conversion
# =============================================================================


def _to_json(data) -> str:
    return json.dumps(data)


def _from_json(s: Optional[str], default):
    if not s:
        return default
    try:
        return json.loads(s)
    except json.JSONDecodeError:
        return default


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        password_hash=row["password_hash"],
        created_at=parse_datetime(row["created_at"]),
    )


def _row_to_gig(row: sqlite3.Row) -> Gig:
    return Gig(
        id=row["id"],
        owner_id=row["owner_id"],
        title=row["title"],
        description=row["description"],
        budget=row["budget"],
        deadline=parse_datetime(row["deadline"]),
        skills_required=_from_json(row["skills_required"], []),
        category=row["category"],
        status=row["status"],
        hired_freelancer_id=row["hired_freelancer_id"],
        accepted_bid_id=row["accepted_bid_id"],
        created_at=parse_datetime(row["created_at"]),
        updated_at=parse_datetime(row["updated_at"]),
    )


def _row_to_bid(row: sqlite3.Row) -> Bid:
    return Bid(
        id=row["id"],
        gig_id=row["gig_id"],
        bidder_id=row["bidder_id"],
        amount=row["amount"],
        proposal=row["proposal"],
        delivery_time=row["delivery_time"],
        status=row["status"],
        created_at=parse_datetime(row["created_at"]),
        updated_at=parse_datetime(row["updated_at"]),
    )


def _row_to_notification(row: sqlite3.Row) -> Notification:
    return Notification(
        id=row["id"],
        user_id=row["user_id"],
        type=row["type"],
        message=row["message"],
        data=_from_json(row["data"], {}),
        read=bool(row["read"]),
        created_at=parse_datetime(row["created_at"]),
    )


# =============================================================================
# Queries shared by plain and transactional access
# =============================================================================


def _select_gig(conn: sqlite3.Connection, gig_id: str) -> Optional[Gig]:
    row = conn.execute("SELECT * FROM gigs WHERE id = ?", (gig_id,)).fetchone()
    return _row_to_gig(row) if row else None


def _select_bid(conn: sqlite3.Connection, bid_id: str) -> Optional[Bid]:
    row = conn.execute("SELECT * FROM bids WHERE id = ?", (bid_id,)).fetchone()
    return _row_to_bid(row) if row else None


def _select_bids(
    conn: sqlite3.Connection,
    gig_id: Optional[str] = None,
    bidder_id: Optional[str] = None,
    status: Optional[str] = None,
    ids: Optional[Iterable[str]] = None,
) -> List[Bid]:
    clauses, params = [], []
    if gig_id is not None:
        clauses.append("gig_id = ?")
        params.append(gig_id)
    if bidder_id is not None:
        clauses.append("bidder_id = ?")
        params.append(bidder_id)
    if status is not None:
        clauses.append("status = ?")
        params.append(status)
    if ids is not None:
        ids = list(ids)
        if not ids:
            return []
        clauses.append(f"id IN ({','.join('?' * len(ids))})")
        params.extend(ids)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    rows = conn.execute(
        f"SELECT * FROM bids {where} ORDER BY created_at DESC, rowid DESC",
        params,
    ).fetchall()
    return [_row_to_bid(r) for r in rows]


def _insert_gig(conn: sqlite3.Connection, gig: Gig) -> None:
    conn.execute(
        """
        INSERT INTO gigs (
            id, owner_id, title, description, budget, deadline, skills_required,
            category, status, hired_freelancer_id, accepted_bid_id,
            created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            gig.id,
            gig.owner_id,
            gig.title,
            gig.description,
            gig.budget,
            to_iso(gig.deadline),
            _to_json(gig.skills_required),
            gig.category,
            gig.status,
            gig.hired_freelancer_id,
            gig.accepted_bid_id,
            to_iso(gig.created_at),
            to_iso(gig.updated_at),
        ),
    )


def _insert_bid(conn: sqlite3.Connection, bid: Bid) -> None:
    conn.execute(
        """
        INSERT INTO bids (
            id, gig_id, bidder_id, amount, proposal, delivery_time, status,
            created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            bid.id,
            bid.gig_id,
            bid.bidder_id,
            bid.amount,
            bid.proposal,
            bid.delivery_time,
            bid.status,
            to_iso(bid.created_at),
            to_iso(bid.updated_at),
        ),
    )


class StoreTransaction:
    """Reads and writes bound to one open ``BEGIN IMMEDIATE`` transaction.

    Obtained from ``SQLiteStorage.transaction()``. Every read observes the
    state as of the lock acquisition plus this transaction's own writes.
    """

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    def get_gig(self, gig_id: str) -> Optional[Gig]:
        return _select_gig(self._conn, gig_id)

    def get_bid(self, bid_id: str) -> Optional[Bid]:
        return _select_bid(self._conn, bid_id)

    def insert_bid(self, bid: Bid) -> None:
        """Insert a bid. A duplicate (gig, bidder) pair raises ConflictError."""
        with _translate_errors("insert_bid"):
            _insert_bid(self._conn, bid)

    def update_gig(self, gig: Gig) -> bool:
        """Write the editable fields of an open gig."""
        cursor = self._conn.execute(
            """
            UPDATE gigs SET
                title = ?, description = ?, budget = ?, deadline = ?,
                skills_required = ?, category = ?, updated_at = ?
            WHERE id = ? AND status = ?
            """,
            (
                gig.title,
                gig.description,
                gig.budget,
                to_iso(gig.deadline),
                _to_json(gig.skills_required),
                gig.category,
                to_iso(utc_now()),
                gig.id,
                GigStatus.OPEN.value,
            ),
        )
        return cursor.rowcount == 1

    def set_gig_status(self, gig_id: str, expected_status: str, new_status: str) -> bool:
        """Compare-and-swap the gig status. Returns False if it did not match."""
        cursor = self._conn.execute(
            "UPDATE gigs SET status = ?, updated_at = ? WHERE id = ? AND status = ?",
            (new_status, to_iso(utc_now()), gig_id, expected_status),
        )
        return cursor.rowcount == 1

    def hire(self, gig_id: str, freelancer_id: str, bid_id: str) -> bool:
        """Move an open gig to in-progress and record the hire in one write."""
        cursor = self._conn.execute(
            """
            UPDATE gigs SET
                status = ?, hired_freelancer_id = ?, accepted_bid_id = ?, updated_at = ?
            WHERE id = ? AND status = ?
            """,
            (
                GigStatus.IN_PROGRESS.value,
                freelancer_id,
                bid_id,
                to_iso(utc_now()),
                gig_id,
                GigStatus.OPEN.value,
            ),
        )
        return cursor.rowcount == 1

    def set_bid_status(self, bid_id: str, expected_status: str, new_status: str) -> bool:
        """Compare-and-swap a bid status. Returns False if it did not match."""
        cursor = self._conn.execute(
            "UPDATE bids SET status = ?, updated_at = ? WHERE id = ? AND status = ?",
            (new_status, to_iso(utc_now()), bid_id, expected_status),
        )
        return cursor.rowcount == 1

    def reject_pending_bids(self, gig_id: str, except_bid_id: str) -> List[str]:
        """Reject every other pending bid of the gig. Returns the rejected ids."""
        rows = self._conn.execute(
            "SELECT id FROM bids WHERE gig_id = ? AND status = ? AND id != ?",
            (gig_id, BidStatus.PENDING.value, except_bid_id),
        ).fetchall()
        ids = [r["id"] for r in rows]
        if ids:
            self._conn.execute(
                f"""
                UPDATE bids SET status = ?, updated_at = ?
                WHERE id IN ({','.join('?' * len(ids))})
                """,
                (BidStatus.REJECTED.value, to_iso(utc_now()), *ids),
            )
        return ids

    def delete_bids_for_gig(self, gig_id: str) -> int:
        cursor = self._conn.execute("DELETE FROM bids WHERE gig_id = ?", (gig_id,))
        return cursor.rowcount

    def delete_gig(self, gig_id: str) -> bool:
        cursor = self._conn.execute("DELETE FROM gigs WHERE id = ?", (gig_id,))
        return cursor.rowcount == 1


class SQLiteStorage:
    """SQLite-backed store for the marketplace.

    Connections are opened per operation. WAL mode lets readers proceed
    while a transaction holds the write lock; they see the last committed
    state, never a partial one.
    """

    def __init__(
        self,
        db_path: Union[str, Path],
        config: Optional[MarketplaceConfig] = None,
        timeout: Optional[float] = None,
    ):
        """
        Args:
            db_path: Database file. Parent directories are created.
            config: Marketplace tunables; ``transaction_timeout`` bounds the
                wait for the write lock.
            timeout: Overrides ``config.transaction_timeout`` when given.
        """
        self.db_path = Path(db_path)
        self.config = config or MarketplaceConfig()
        self.timeout = self.config.transaction_timeout if timeout is None else timeout
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        """Open a connection in autocommit mode; transactions are explicit."""
        conn = sqlite3.connect(
            self.db_path,
            timeout=self.timeout,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute(f"PRAGMA busy_timeout={int(self.timeout * 1000)}")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    @contextlib.contextmanager
    def _connect(self, immediate: bool = False, action: str = "query"):
        """Context manager that runs the body in a transaction and closes the connection.

        - BEGIN (or BEGIN IMMEDIATE) on entry
        - COMMIT on success
        - ROLLBACK on any exception, which is re-raised translated
        """
        with _translate_errors(action):
            conn = self._get_conn()
            try:
                conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
                try:
                    yield conn
                    conn.commit()
                except BaseException as e:
                    logger.debug(f"Transaction failed, rolling back: {e!r}")
                    conn.rollback()
                    raise
            finally:
                conn.close()

    @contextlib.contextmanager
    def transaction(self, action: str = "transaction") -> Iterator[StoreTransaction]:
        """Open a write transaction.

        Raises:
            TransactionTimeoutError: If the write lock was not acquired in time
            StorageError: On any other store failure; nothing is committed
        """
        with self._connect(immediate=True, action=action) as conn:
            yield StoreTransaction(conn)

    def _init_db(self) -> None:
        with _translate_errors("init_db"):
            with closing(self._get_conn()) as conn:
                init_db(conn)

    # === Users ===

    def save_user(self, user: User) -> str:
        with self._connect(immediate=True, action="save_user") as conn:
            conn.execute(
                """
                INSERT INTO users (id, name, email, password_hash, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (user.id, user.name, user.email, user.password_hash, to_iso(user.created_at)),
            )
        return user.id

    def get_user(self, user_id: str) -> Optional[User]:
        with self._connect(action="get_user") as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return _row_to_user(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._connect(action="get_user_by_email") as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ?", (email.strip().lower(),)
            ).fetchone()
        return _row_to_user(row) if row else None

    def get_users(self, user_ids: Iterable[str]) -> Dict[str, User]:
        """Batch lookup for display fields. Missing ids are omitted."""
        ids = sorted({u for u in user_ids if u})
        if not ids:
            return {}
        with self._connect(action="get_users") as conn:
            rows = conn.execute(
                f"SELECT * FROM users WHERE id IN ({','.join('?' * len(ids))})",
                ids,
            ).fetchall()
        return {row["id"]: _row_to_user(row) for row in rows}

    # === Gigs ===

    def save_gig(self, gig: Gig) -> str:
        with self._connect(immediate=True, action="save_gig") as conn:
            _insert_gig(conn, gig)
        return gig.id

    def get_gig(self, gig_id: str) -> Optional[Gig]:
        with self._connect(action="get_gig") as conn:
            return _select_gig(conn, gig_id)

    def list_gigs(
        self,
        status: Optional[str] = None,
        category: Optional[str] = None,
        owner_id: Optional[str] = None,
        min_budget: Optional[float] = None,
        max_budget: Optional[float] = None,
        search: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> Tuple[List[Gig], int]:
        """List gigs newest first. Returns (page, total matching)."""
        clauses, params = [], []
        if status is not None:
            clauses.append("status = ?")
            params.append(status)
        if category is not None:
            clauses.append("category = ?")
            params.append(category)
        if owner_id is not None:
            clauses.append("owner_id = ?")
            params.append(owner_id)
        if min_budget is not None:
            clauses.append("budget >= ?")
            params.append(min_budget)
        if max_budget is not None:
            clauses.append("budget <= ?")
            params.append(max_budget)
        if search:
            pattern = f"%{search.strip().lower()}%"
            clauses.append("(LOWER(title) LIKE ? OR LOWER(description) LIKE ?)")
            params.extend([pattern, pattern])
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with self._connect(action="list_gigs") as conn:
            total = conn.execute(f"SELECT COUNT(*) AS n FROM gigs {where}", params).fetchone()["n"]
            rows = conn.execute(
                f"""
                SELECT * FROM gigs {where}
                ORDER BY created_at DESC, rowid DESC
                LIMIT ? OFFSET ?
                """,
                (*params, limit, offset),
            ).fetchall()
        return [_row_to_gig(r) for r in rows], total

    def count_bids(self, gig_id: str) -> int:
        with self._connect(action="count_bids") as conn:
            row = conn.execute("SELECT COUNT(*) AS n FROM bids WHERE gig_id = ?", (gig_id,)).fetchone()
        return row["n"]

    # === Bids ===

    def get_bid(self, bid_id: str) -> Optional[Bid]:
        with self._connect(action="get_bid") as conn:
            return _select_bid(conn, bid_id)

    def list_bids(
        self,
        gig_id: Optional[str] = None,
        bidder_id: Optional[str] = None,
        status: Optional[str] = None,
        ids: Optional[Iterable[str]] = None,
    ) -> List[Bid]:
        """List bids newest first."""
        with self._connect(action="list_bids") as conn:
            return _select_bids(conn, gig_id=gig_id, bidder_id=bidder_id, status=status, ids=ids)

    def get_gigs(self, gig_ids: Iterable[str]) -> Dict[str, Gig]:
        ids = sorted(set(gig_ids))
        if not ids:
            return {}
        with self._connect(action="get_gigs") as conn:
            rows = conn.execute(
                f"SELECT * FROM gigs WHERE id IN ({','.join('?' * len(ids))})",
                ids,
            ).fetchall()
        return {row["id"]: _row_to_gig(row) for row in rows}

    # === Notifications ===

    def save_notification(self, notification: Notification) -> str:
        with self._connect(immediate=True, action="save_notification") as conn:
            conn.execute(
                """
                INSERT INTO notifications (id, user_id, type, message, data, read, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    notification.id,
                    notification.user_id,
                    notification.type,
                    notification.message,
                    _to_json(notification.data),
                    1 if notification.read else 0,
                    to_iso(notification.created_at),
                ),
            )
        return notification.id

    def get_notification(self, notification_id: str) -> Optional[Notification]:
        with self._connect(action="get_notification") as conn:
            row = conn.execute(
                "SELECT * FROM notifications WHERE id = ?", (notification_id,)
            ).fetchone()
        return _row_to_notification(row) if row else None

    def list_notifications(self, user_id: str, limit: int = 50) -> List[Notification]:
        with self._connect(action="list_notifications") as conn:
            rows = conn.execute(
                """
                SELECT * FROM notifications WHERE user_id = ?
                ORDER BY created_at DESC, rowid DESC
                LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()
        return [_row_to_notification(r) for r in rows]

    def count_unread_notifications(self, user_id: str) -> int:
        with self._connect(action="count_unread_notifications") as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM notifications WHERE user_id = ? AND read = 0",
                (user_id,),
            ).fetchone()
        return row["n"]

    def mark_notification_read(self, notification_id: str, user_id: str) -> Optional[Notification]:
        """Set read on a notification owned by user_id. None if no such notification."""
        with self._connect(immediate=True, action="mark_notification_read") as conn:
            cursor = conn.execute(
                "UPDATE notifications SET read = 1 WHERE id = ? AND user_id = ?",
                (notification_id, user_id),
            )
            if cursor.rowcount == 0:
                return None
            row = conn.execute(
                "SELECT * FROM notifications WHERE id = ?", (notification_id,)
            ).fetchone()
        return _row_to_notification(row)

    def mark_all_notifications_read(self, user_id: str) -> int:
        with self._connect(immediate=True, action="mark_all_notifications_read") as conn:
            cursor = conn.execute(
                "UPDATE notifications SET read = 1 WHERE user_id = ? AND read = 0",
                (user_id,),
            )
        return cursor.rowcount
