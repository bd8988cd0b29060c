# petpro/repositories/company_repository.py
from __future__ import annotations
from typing import Optional

from psycopg2 import errors as pg_errors

from petpro.core.db import UniqueViolationError
from petpro.domain.models import Company, NewCompany


class CompanyRepository:
    def __init__(self, cur):
        self.cur = cur

    def cnpj_exists(self, cnpj_digits: str) -> bool:
        self.cur.execute(
            """
            SELECT 1 FROM companies
            WHERE REGEXP_REPLACE(COALESCE(cnpj, ''), '[^0-9]', '', 'g') = %s
            LIMIT 1
            """,
            (cnpj_digits,),
        )
        return self.cur.fetchone() is not None

    def create(self, c: NewCompany) -> Company:
        try:
            self.cur.execute(
                """
                INSERT INTO companies (name, cnpj, phone, address, status, current_plan_id, trial_ends_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                RETURNING id, name
                """,
                (c.name, c.cnpj, c.phone, c.address, c.status, c.current_plan_id, c.trial_ends_at),
            )
        except pg_errors.UniqueViolation as e:
            raise UniqueViolationError(field="company_cnpj", constraint=e.diag.constraint_name) from e
        row = self.cur.fetchone()
        return Company(id=str(row[0]), name=row[1])

    def get(self, company_id: str) -> Optional[Company]:
        self.cur.execute("SELECT id, name FROM companies WHERE id = %s", (company_id,))
        row = self.cur.fetchone()
        return Company(id=str(row[0]), name=row[1]) if row else None
