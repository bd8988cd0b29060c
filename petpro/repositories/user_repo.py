"""
Repository for users and their tenant-binding profiles.

- All lookups by email are case-insensitive (LOWER(email))
- profiles.company_id is the single source of truth for a user's tenant
- No raw queries inside API routes
"""
from __future__ import annotations
from typing import List, Optional

from psycopg2 import errors as pg_errors

from petpro.core.db import UniqueViolationError
from petpro.domain.models import BASE_ROLE, ROLES, Member, User

_USER_COLUMNS = "id, email, COALESCE(full_name, ''), phone, password_hash"


def _to_user(row) -> Optional[User]:
    if not row:
        return None
    return User(id=str(row[0]), email=row[1], full_name=row[2], phone=row[3], password_hash=row[4])


class UserRepository:
    def __init__(self, cur):
        self.cur = cur

    def find_by_email(self, email: str) -> Optional[User]:
        self.cur.execute(
            f"SELECT {_USER_COLUMNS} FROM users WHERE LOWER(email) = %s LIMIT 1",
            (email.lower(),),
        )
        return _to_user(self.cur.fetchone())

    def find_by_id(self, user_id: str) -> Optional[User]:
        self.cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE id = %s", (user_id,))
        return _to_user(self.cur.fetchone())

    def email_exists(self, email: str) -> bool:
        self.cur.execute("SELECT 1 FROM users WHERE LOWER(email) = %s LIMIT 1", (email.lower(),))
        return self.cur.fetchone() is not None

    def create(self, email: str, full_name: str, phone: Optional[str], password_hash: str) -> User:
        try:
            self.cur.execute(
                f"""
                INSERT INTO users (email, full_name, phone, password_hash)
                VALUES (%s, %s, %s, %s)
                RETURNING {_USER_COLUMNS}
                """,
                (email, full_name, phone, password_hash),
            )
        except pg_errors.UniqueViolation as e:
            raise UniqueViolationError(field="email", constraint=e.diag.constraint_name) from e
        return _to_user(self.cur.fetchone())

    def update_password(self, user_id: str, password_hash: str) -> bool:
        self.cur.execute(
            "UPDATE users SET password_hash = %s WHERE id = %s",
            (password_hash, user_id),
        )
        return self.cur.rowcount > 0


class ProfileRepository:
    def __init__(self, cur):
        self.cur = cur

    def company_id_of(self, user_id: str) -> Optional[str]:
        self.cur.execute("SELECT company_id FROM profiles WHERE id = %s", (user_id,))
        row = self.cur.fetchone()
        return str(row[0]) if row and row[0] is not None else None

    def upsert(self, user_id: str, full_name: str, email: str, company_id: Optional[str]) -> None:
        self.cur.execute(
            """
            INSERT INTO profiles (id, full_name, email, company_id)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (id) DO UPDATE SET
              company_id = EXCLUDED.company_id,
              full_name = EXCLUDED.full_name,
              email = EXCLUDED.email
            """,
            (user_id, full_name, email, company_id),
        )

    def belongs_to(self, user_id: str, company_id: str) -> bool:
        self.cur.execute(
            "SELECT 1 FROM profiles WHERE id = %s AND company_id = %s LIMIT 1",
            (user_id, company_id),
        )
        return self.cur.fetchone() is not None

    def list_members(self, company_id: str) -> List[Member]:
        # one row per member: the highest role held in this company wins
        self.cur.execute(
            """
            SELECT id, name, email, role FROM (
              SELECT DISTINCT ON (p.id)
                     p.id, COALESCE(p.full_name, '') AS name, COALESCE(p.email, '') AS email, r.role
              FROM profiles p
              LEFT JOIN user_roles r ON r.user_id = p.id AND r.company_id = %s
              WHERE p.company_id = %s
              ORDER BY p.id, array_position(%s::text[], r.role)
            ) m
            ORDER BY name
            """,
            (company_id, company_id, list(ROLES)),
        )
        return [
            Member(id=str(r[0]), name=r[1], email=r[2], role=r[3] or BASE_ROLE)
            for r in self.cur.fetchall()
        ]
