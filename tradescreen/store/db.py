from __future__ import annotations

import os
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, Iterator

from tradescreen.core.errors import DuplicateAssessmentError, DuplicateCandidateError, ReferentialError
from tradescreen.schemas.assessment import Assessment
from tradescreen.schemas.entities import Candidate, ScreeningStatus, Session
from tradescreen.schemas.notification import Notification

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS candidates (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        screening_status TEXT NOT NULL,
        trade_category TEXT NOT NULL,
        flagged INTEGER NOT NULL,
        invited_at TEXT,
        payload_json TEXT NOT NULL
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_candidates_status ON candidates (screening_status);",
    "CREATE INDEX IF NOT EXISTS idx_candidates_flagged ON candidates (flagged);",
    """
    CREATE TABLE IF NOT EXISTS sessions (
        id TEXT PRIMARY KEY,
        candidate_id TEXT NOT NULL REFERENCES candidates (id),
        external_session_id TEXT,
        status TEXT NOT NULL,
        start_time TEXT,
        created_at TEXT NOT NULL,
        payload_json TEXT NOT NULL
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_sessions_status ON sessions (status);",
    "CREATE INDEX IF NOT EXISTS idx_sessions_start_time ON sessions (start_time);",
    "CREATE INDEX IF NOT EXISTS idx_sessions_candidate ON sessions (candidate_id);",
    "CREATE INDEX IF NOT EXISTS idx_sessions_external ON sessions (external_session_id);",
    """
    CREATE TABLE IF NOT EXISTS assessments (
        id TEXT PRIMARY KEY,
        session_id TEXT NOT NULL REFERENCES sessions (id),
        candidate_id TEXT NOT NULL REFERENCES candidates (id),
        overall_score INTEGER NOT NULL,
        passed INTEGER NOT NULL,
        completed_at TEXT NOT NULL,
        payload_json TEXT NOT NULL
    );
    """,
    # One assessment per session; the insert relies on this to fail on a duplicate.
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_assessments_session ON assessments (session_id);",
    "CREATE INDEX IF NOT EXISTS idx_assessments_candidate ON assessments (candidate_id);",
    "CREATE INDEX IF NOT EXISTS idx_assessments_completed_at ON assessments (completed_at);",
    """
    CREATE TABLE IF NOT EXISTS notifications (
        id TEXT PRIMARY KEY,
        type TEXT NOT NULL,
        priority TEXT NOT NULL,
        candidate_id TEXT,
        session_id TEXT,
        read INTEGER NOT NULL,
        created_at TEXT NOT NULL,
        payload_json TEXT NOT NULL
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_notifications_created_at ON notifications (created_at);",
    "CREATE INDEX IF NOT EXISTS idx_notifications_read ON notifications (read);",
)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class SessionTransition:
    """What a session change writes: the session, optionally its candidate, and new notifications."""

    session: Session
    candidate: Candidate | None = None
    notifications: tuple[Notification, ...] = ()


class ScreeningStore:
    """SQLite persistence for candidates, sessions, assessments and notifications.

    A single connection is shared across threads and every write runs under
    the store lock inside ``BEGIN IMMEDIATE``, so multi-row changes (an
    assessment plus the candidate status it implies) land together or not at all.
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._lock = threading.Lock()
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._conn = sqlite3.connect(
            db_path,
            check_same_thread=False,
            timeout=5,
            isolation_level=None,
        )
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._conn.execute("PRAGMA busy_timeout=5000;")
        self._conn.execute("PRAGMA foreign_keys=ON;")
        for statement in _SCHEMA:
            self._conn.execute(statement)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Cursor]:
        with self._lock:
            cursor = self._conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            try:
                yield cursor
                self._conn.commit()
            except Exception:
                self._conn.rollback()
                raise

    def _fetch_payloads(self, sql: str, params: tuple[Any, ...] = ()) -> list[str]:
        with self._lock:
            cursor = self._conn.execute(sql, params)
            return [row[0] for row in cursor.fetchall()]

    def _fetch_payload(self, sql: str, params: tuple[Any, ...]) -> str | None:
        rows = self._fetch_payloads(sql, params)
        return rows[0] if rows else None

    # -- row readers for use inside a transaction ---------------------------

    @staticmethod
    def _read_candidate(cursor: sqlite3.Cursor, candidate_id: str) -> Candidate:
        row = cursor.execute("SELECT payload_json FROM candidates WHERE id = ?", (candidate_id,)).fetchone()
        if row is None:
            raise ReferentialError(f"Candidate {candidate_id} not found.")
        return Candidate.model_validate_json(row[0])

    @staticmethod
    def _read_session(cursor: sqlite3.Cursor, session_id: str) -> Session:
        row = cursor.execute("SELECT payload_json FROM sessions WHERE id = ?", (session_id,)).fetchone()
        if row is None:
            raise ReferentialError(f"Session {session_id} not found.")
        return Session.model_validate_json(row[0])

    def _set_candidate_status(
        self,
        cursor: sqlite3.Cursor,
        candidate_id: str,
        screening_status: ScreeningStatus,
        contacted_at: datetime,
    ) -> Candidate:
        current = self._read_candidate(cursor, candidate_id)
        updated = current.model_copy(update={"screening_status": screening_status, "last_contact_at": contacted_at})
        self._update_candidate(cursor, updated)
        return updated

    # -- row writers, always called inside a transaction ------------------

    @staticmethod
    def _insert_candidate(cursor: sqlite3.Cursor, candidate: Candidate) -> None:
        try:
            cursor.execute(
                """
                INSERT INTO candidates (
                    id, email, screening_status, trade_category, flagged, invited_at, payload_json
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    candidate.id,
                    candidate.email,
                    candidate.screening_status,
                    candidate.trade_category,
                    1 if candidate.flagged else 0,
                    _iso(candidate.invited_at),
                    candidate.model_dump_json(),
                ),
            )
        except sqlite3.IntegrityError as exc:
            raise DuplicateCandidateError(candidate.email) from exc

    @staticmethod
    def _update_candidate(cursor: sqlite3.Cursor, candidate: Candidate) -> None:
        cursor.execute(
            """
            UPDATE candidates
            SET screening_status = ?, trade_category = ?, flagged = ?, invited_at = ?, payload_json = ?
            WHERE id = ?
            """,
            (
                candidate.screening_status,
                candidate.trade_category,
                1 if candidate.flagged else 0,
                _iso(candidate.invited_at),
                candidate.model_dump_json(),
                candidate.id,
            ),
        )

    @staticmethod
    def _insert_session(cursor: sqlite3.Cursor, session: Session) -> None:
        cursor.execute(
            """
            INSERT INTO sessions (
                id, candidate_id, external_session_id, status, start_time, created_at, payload_json
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                session.id,
                session.candidate_id,
                session.external_session_id,
                session.status,
                _iso(session.start_time),
                _iso(session.created_at),
                session.model_dump_json(),
            ),
        )

    @staticmethod
    def _update_session(cursor: sqlite3.Cursor, session: Session) -> None:
        cursor.execute(
            """
            UPDATE sessions
            SET external_session_id = ?, status = ?, start_time = ?, payload_json = ?
            WHERE id = ?
            """,
            (
                session.external_session_id,
                session.status,
                _iso(session.start_time),
                session.model_dump_json(),
                session.id,
            ),
        )

    @staticmethod
    def _write_assessment(cursor: sqlite3.Cursor, assessment: Assessment, *, insert: bool) -> None:
        if insert:
            try:
                cursor.execute(
                    """
                    INSERT INTO assessments (
                        id, session_id, candidate_id, overall_score, passed, completed_at, payload_json
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        assessment.id,
                        assessment.session_id,
                        assessment.candidate_id,
                        assessment.overall_score,
                        1 if assessment.passed else 0,
                        _iso(assessment.completed_at),
                        assessment.model_dump_json(),
                    ),
                )
            except sqlite3.IntegrityError as exc:
                if "assessments.session_id" in str(exc) or "UNIQUE" in str(exc).upper():
                    raise DuplicateAssessmentError(assessment.session_id) from exc
                raise
            return
        cursor.execute(
            """
            UPDATE assessments
            SET overall_score = ?, passed = ?, payload_json = ?
            WHERE id = ?
            """,
            (
                assessment.overall_score,
                1 if assessment.passed else 0,
                assessment.model_dump_json(),
                assessment.id,
            ),
        )

    @staticmethod
    def _write_notification(cursor: sqlite3.Cursor, notification: Notification, *, insert: bool) -> None:
        if insert:
            cursor.execute(
                """
                INSERT INTO notifications (
                    id, type, priority, candidate_id, session_id, read, created_at, payload_json
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    notification.id,
                    notification.type,
                    notification.priority,
                    notification.candidate_id,
                    notification.session_id,
                    1 if notification.read else 0,
                    _iso(notification.created_at),
                    notification.model_dump_json(),
                ),
            )
            return
        cursor.execute(
            "UPDATE notifications SET read = ?, payload_json = ? WHERE id = ?",
            (1 if notification.read else 0, notification.model_dump_json(), notification.id),
        )

    # -- candidates ---------------------------------------------------------

    def insert_candidate(self, candidate: Candidate) -> Candidate:
        with self._transaction() as cursor:
            self._insert_candidate(cursor, candidate)
        return candidate

    def mutate_candidate(
        self,
        candidate_id: str,
        change: Callable[[Candidate], Candidate],
        notifications: Iterable[Notification] = (),
    ) -> Candidate:
        """Apply ``change`` to the committed candidate row under the write lock.

        Raising from ``change`` leaves the row and the notifications unwritten.
        """
        with self._transaction() as cursor:
            updated = change(self._read_candidate(cursor, candidate_id))
            self._update_candidate(cursor, updated)
            for notification in notifications:
                self._write_notification(cursor, notification, insert=True)
        return updated

    def get_candidate(self, candidate_id: str) -> Candidate | None:
        payload = self._fetch_payload("SELECT payload_json FROM candidates WHERE id = ?", (candidate_id,))
        return Candidate.model_validate_json(payload) if payload else None

    def get_candidate_by_email(self, email: str) -> Candidate | None:
        payload = self._fetch_payload(
            "SELECT payload_json FROM candidates WHERE email = ?",
            (email.strip().lower(),),
        )
        return Candidate.model_validate_json(payload) if payload else None

    def list_candidates(
        self,
        *,
        screening_status: str | None = None,
        flagged: bool | None = None,
        limit: int = 50,
    ) -> list[Candidate]:
        clauses: list[str] = []
        params: list[Any] = []
        if screening_status is not None:
            clauses.append("screening_status = ?")
            params.append(screening_status)
        if flagged is not None:
            clauses.append("flagged = ?")
            params.append(1 if flagged else 0)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(limit)
        payloads = self._fetch_payloads(
            f"SELECT payload_json FROM candidates {where} ORDER BY rowid DESC LIMIT ?",
            tuple(params),
        )
        return [Candidate.model_validate_json(payload) for payload in payloads]

    # -- sessions -----------------------------------------------------------

    def insert_session(self, session: Session, candidate_status: ScreeningStatus | None = None) -> Session:
        with self._transaction() as cursor:
            self._insert_session(cursor, session)
            if candidate_status is not None:
                self._set_candidate_status(cursor, session.candidate_id, candidate_status, session.created_at)
        return session

    def mutate_session(self, session_id: str, change: Callable[[Session], Session]) -> Session:
        """Apply ``change`` to the committed session row under the write lock.

        Status checks made inside ``change`` hold at write time; raising from it
        leaves the row untouched. ``change`` runs under the store lock and must
        not call back into the store.
        """
        with self._transaction() as cursor:
            updated = change(self._read_session(cursor, session_id))
            self._update_session(cursor, updated)
        return updated

    def transition_session(
        self,
        session_id: str,
        change: Callable[[Session, Candidate], SessionTransition],
        *,
        unassessed_only: bool = False,
    ) -> SessionTransition:
        """Like ``mutate_session`` but also writes the candidate and notifications ``change`` returns.

        With ``unassessed_only`` the change is refused with ``DuplicateAssessmentError``
        once the session has an assessment.
        """
        with self._transaction() as cursor:
            session = self._read_session(cursor, session_id)
            if unassessed_only:
                row = cursor.execute("SELECT 1 FROM assessments WHERE session_id = ?", (session_id,)).fetchone()
                if row is not None:
                    raise DuplicateAssessmentError(session_id)
            result = change(session, self._read_candidate(cursor, session.candidate_id))
            self._update_session(cursor, result.session)
            if result.candidate is not None:
                self._update_candidate(cursor, result.candidate)
            for notification in result.notifications:
                self._write_notification(cursor, notification, insert=True)
        return result

    def get_session(self, session_id: str) -> Session | None:
        payload = self._fetch_payload("SELECT payload_json FROM sessions WHERE id = ?", (session_id,))
        return Session.model_validate_json(payload) if payload else None

    def get_session_by_external_id(self, external_session_id: str) -> Session | None:
        payload = self._fetch_payload(
            "SELECT payload_json FROM sessions WHERE external_session_id = ? ORDER BY created_at DESC LIMIT 1",
            (external_session_id,),
        )
        return Session.model_validate_json(payload) if payload else None

    def list_sessions(
        self,
        *,
        status: str | None = None,
        candidate_id: str | None = None,
        started_from: datetime | None = None,
        started_to: datetime | None = None,
        limit: int = 50,
    ) -> list[Session]:
        clauses: list[str] = []
        params: list[Any] = []
        if status is not None:
            clauses.append("status = ?")
            params.append(status)
        if candidate_id is not None:
            clauses.append("candidate_id = ?")
            params.append(candidate_id)
        if started_from is not None:
            clauses.append("start_time >= ?")
            params.append(started_from.isoformat())
        if started_to is not None:
            clauses.append("start_time <= ?")
            params.append(started_to.isoformat())
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(limit)
        payloads = self._fetch_payloads(
            f"SELECT payload_json FROM sessions {where} ORDER BY created_at DESC LIMIT ?",
            tuple(params),
        )
        return [Session.model_validate_json(payload) for payload in payloads]

    def list_unassessed_completed_sessions(self, limit: int = 10) -> list[Session]:
        payloads = self._fetch_payloads(
            """
            SELECT s.payload_json
            FROM sessions s
            LEFT JOIN assessments a ON a.session_id = s.id
            WHERE s.status = 'completed' AND a.id IS NULL
            ORDER BY s.created_at DESC
            LIMIT ?
            """,
            (limit,),
        )
        return [Session.model_validate_json(payload) for payload in payloads]

    # -- assessments --------------------------------------------------------

    def create_assessment(
        self,
        assessment: Assessment,
        screening_status: ScreeningStatus,
        notifications: Iterable[Notification] = (),
    ) -> Assessment:
        """Insert the assessment, the candidate outcome and its notifications atomically.

        The candidate row is re-read inside the transaction, so HR edits made
        while the transcript was being scored are kept.
        """
        with self._transaction() as cursor:
            self._write_assessment(cursor, assessment, insert=True)
            self._set_candidate_status(cursor, assessment.candidate_id, screening_status, assessment.completed_at)
            for notification in notifications:
                self._write_notification(cursor, notification, insert=True)
        return assessment

    def update_assessment(
        self,
        assessment: Assessment,
        screening_status: ScreeningStatus | None = None,
        contacted_at: datetime | None = None,
    ) -> Assessment:
        with self._transaction() as cursor:
            self._write_assessment(cursor, assessment, insert=False)
            if screening_status is not None:
                self._set_candidate_status(
                    cursor,
                    assessment.candidate_id,
                    screening_status,
                    contacted_at or assessment.completed_at,
                )
        return assessment

    def get_assessment(self, assessment_id: str) -> Assessment | None:
        payload = self._fetch_payload("SELECT payload_json FROM assessments WHERE id = ?", (assessment_id,))
        return Assessment.model_validate_json(payload) if payload else None

    def get_assessment_by_session(self, session_id: str) -> Assessment | None:
        payload = self._fetch_payload(
            "SELECT payload_json FROM assessments WHERE session_id = ?",
            (session_id,),
        )
        return Assessment.model_validate_json(payload) if payload else None

    def list_assessments_by_candidate(self, candidate_id: str) -> list[Assessment]:
        payloads = self._fetch_payloads(
            "SELECT payload_json FROM assessments WHERE candidate_id = ? ORDER BY completed_at DESC",
            (candidate_id,),
        )
        return [Assessment.model_validate_json(payload) for payload in payloads]

    def list_recent_assessments(self, *, limit: int = 20, passed: bool | None = None) -> list[Assessment]:
        if passed is None:
            payloads = self._fetch_payloads(
                "SELECT payload_json FROM assessments ORDER BY completed_at DESC LIMIT ?",
                (limit,),
            )
        else:
            payloads = self._fetch_payloads(
                "SELECT payload_json FROM assessments WHERE passed = ? ORDER BY completed_at DESC LIMIT ?",
                (1 if passed else 0, limit),
            )
        return [Assessment.model_validate_json(payload) for payload in payloads]

    # -- notifications ------------------------------------------------------

    def save_notification(self, notification: Notification) -> Notification:
        with self._transaction() as cursor:
            self._write_notification(cursor, notification, insert=False)
        return notification

    def get_notification(self, notification_id: str) -> Notification | None:
        payload = self._fetch_payload("SELECT payload_json FROM notifications WHERE id = ?", (notification_id,))
        return Notification.model_validate_json(payload) if payload else None

    def list_notifications(
        self,
        *,
        unread_only: bool = False,
        candidate_id: str | None = None,
        session_id: str | None = None,
        limit: int = 50,
    ) -> list[Notification]:
        clauses: list[str] = []
        params: list[Any] = []
        if unread_only:
            clauses.append("read = 0")
        if candidate_id is not None:
            clauses.append("candidate_id = ?")
            params.append(candidate_id)
        if session_id is not None:
            clauses.append("session_id = ?")
            params.append(session_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(limit)
        payloads = self._fetch_payloads(
            f"SELECT payload_json FROM notifications {where} ORDER BY created_at DESC, rowid DESC LIMIT ?",
            tuple(params),
        )
        return [Notification.model_validate_json(payload) for payload in payloads]
