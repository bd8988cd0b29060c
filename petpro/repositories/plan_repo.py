# petpro/repositories/plan_repo.py
from __future__ import annotations
from typing import List, Optional

from psycopg2 import sql

from petpro.domain.models import CompanyPlanRow, Plan, PlanChanges, TrialPlan

# Tables that carry a company_id and may be counted against a plan cap
COUNTABLE_TABLES = frozenset({"profiles", "pets"})

_PLAN_COLUMNS = (
    "id, name, description, price, trial_days, max_users, max_pets, "
    "COALESCE(features, '{}'::jsonb), is_active"
)


def _to_plan(r) -> Plan:
    return Plan(
        id=str(r[0]), name=r[1], description=r[2], price=float(r[3] or 0),
        trial_days=int(r[4] or 0), max_users=r[5], max_pets=r[6],
        features=r[7] if isinstance(r[7], dict) else {}, is_active=bool(r[8]),
    )


class PlanRepository:
    def __init__(self, cur):
        self.cur = cur

    def find_trial_plan(self) -> Optional[TrialPlan]:
        self.cur.execute(
            """
            SELECT id, trial_days
            FROM plans
            WHERE is_active = true AND LOWER(name) = 'trial'
            ORDER BY trial_days DESC
            LIMIT 1
            """
        )
        row = self.cur.fetchone()
        if not row:
            return None
        return TrialPlan(id=str(row[0]), trial_days=int(row[1] if row[1] is not None else 0))

    def company_plan(self, company_id: str, for_update: bool = False) -> Optional[CompanyPlanRow]:
        query = """
            SELECT c.status::text, c.current_plan_id, p.id, p.name, p.max_users, p.max_pets, p.features
            FROM companies c
            LEFT JOIN plans p ON p.id = c.current_plan_id
            WHERE c.id = %s
        """
        if for_update:
            # serializes concurrent cap checks for the same tenant
            query += " FOR UPDATE OF c"
        self.cur.execute(query, (company_id,))
        row = self.cur.fetchone()
        if not row:
            return None
        return CompanyPlanRow(
            company_status=row[0] or "trial",
            current_plan_id=str(row[1]) if row[1] is not None else None,
            plan_id=str(row[2]) if row[2] is not None else None,
            plan_name=row[3],
            max_users=row[4],
            max_pets=row[5],
            features=row[6],
        )

    def count_for_company(self, table: str, company_id: str) -> int:
        if table not in COUNTABLE_TABLES:
            raise ValueError(f"Table not countable: {table}")
        self.cur.execute(
            sql.SQL("SELECT COUNT(*) FROM {} WHERE company_id = %s").format(sql.Identifier(table)),
            (company_id,),
        )
        row = self.cur.fetchone()
        return int(row[0]) if row else 0

    def list_plans(self) -> List[Plan]:
        self.cur.execute(
            f"""
            SELECT {_PLAN_COLUMNS}
            FROM plans
            ORDER BY price ASC
            """
        )
        return [_to_plan(r) for r in self.cur.fetchall()]

    def update(self, plan_id: str, changes: PlanChanges) -> Optional[Plan]:
        # id::text so a malformed id reads as "not found" instead of a cast error
        self.cur.execute(
            f"""
            UPDATE plans SET
              name = %s, description = %s, price = %s, trial_days = %s,
              max_users = %s, max_pets = %s, is_active = %s
            WHERE id::text = %s
            RETURNING {_PLAN_COLUMNS}
            """,
            (
                changes.name,
                changes.description,
                changes.price,
                changes.trial_days,
                changes.max_users,
                changes.max_pets,
                changes.is_active,
                plan_id,
            ),
        )
        row = self.cur.fetchone()
        return _to_plan(row) if row else None
