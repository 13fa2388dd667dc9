"""create customers view

Revision ID: 202610190008
Revises: 202610190007
Create Date: 2026-10-19 01:10:00
"""

from collections.abc import Sequence

from alembic import op


revision: str = "202610190008"
down_revision: str | None = "202610190007"
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.execute(
        """
        CREATE VIEW customers_view AS
        SELECT
            'company-' || CAST(companies.id AS TEXT) AS uid,
            companies.id AS entity_id,
            companies.team_id AS team_id,
            'company' AS type,
            companies.name AS name,
            companies.primary_email AS email,
            companies.phone AS phone,
            companies.created_at AS created_at
        FROM companies
        WHERE companies.deleted_at IS NULL
        UNION ALL
        SELECT
            'person-' || CAST(people.id AS TEXT) AS uid,
            people.id AS entity_id,
            people.team_id AS team_id,
            'person' AS type,
            people.name AS name,
            people.primary_email AS email,
            COALESCE(people.phone_mobile, people.phone_office, people.phone_home, people.phone_fax) AS phone,
            people.created_at AS created_at
        FROM people
        WHERE people.deleted_at IS NULL
        """
    )


def downgrade() -> None:
    op.execute("DROP VIEW IF EXISTS customers_view")
