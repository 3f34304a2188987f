"""initial schema

Revision ID: 3b1f9c2e7a10
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b1f9c2e7a10"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _ts(name: str, *, nullable: bool = False, server_default=None) -> sa.Column:
    return sa.Column(
        name, sa.DateTime(timezone=True), nullable=nullable, server_default=server_default
    )


def upgrade() -> None:
    op.create_table(
        "identities",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("wallet_address", sa.String(length=64), nullable=False, unique=True),
        sa.Column("did", sa.String(length=255), nullable=False, unique=True),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="HOLDER"),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("username", sa.String(length=100), nullable=True),
        sa.Column("institution_name", sa.String(length=255), nullable=True),
        _ts("created_at", server_default=sa.func.now()),
        _ts("updated_at", server_default=sa.func.now()),
    )

    op.create_table(
        "credentials",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("type", sa.String(length=255), nullable=False),
        sa.Column(
            "issuer_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("identities.id"),
            nullable=False,
        ),
        sa.Column(
            "holder_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("identities.id"),
            nullable=True,
        ),
        sa.Column("issuer_did", sa.String(length=255), nullable=True),
        sa.Column("subject_did", sa.String(length=255), nullable=False),
        sa.Column("claims", postgresql.JSONB(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="ACTIVE"),
        _ts("issued_at"),
        _ts("expires_at", nullable=True),
        _ts("revoked_at", nullable=True),
        sa.Column("revocation_reason", sa.Text(), nullable=True),
        sa.Column("proof", postgresql.JSONB(), nullable=True),
    )
    op.create_index(
        "ix_credentials_subject_status_issued",
        "credentials",
        ["subject_did", "status", "issued_at"],
    )

    op.create_table(
        "credential_templates",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("schema", postgresql.JSONB(), nullable=False),
        sa.Column(
            "created_by_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("identities.id"),
            nullable=False,
        ),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index(
        "ix_credential_templates_name", "credential_templates", ["name"]
    )

    op.create_table(
        "proof_requests",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "verifier_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("identities.id"),
            nullable=False,
        ),
        sa.Column("requested_types", postgresql.JSONB(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="ACTIVE"),
        _ts("expires_at", nullable=True),
        sa.Column("target_holders", postgresql.JSONB(), nullable=True),
        sa.Column("requirements", postgresql.JSONB(), nullable=True),
        _ts("created_at"),
    )

    op.create_table(
        "proof_responses",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "proof_request_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("proof_requests.id"),
            nullable=False,
        ),
        sa.Column(
            "holder_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("identities.id"),
            nullable=False,
        ),
        sa.Column(
            "status", sa.String(length=16), nullable=False, server_default="SUBMITTED"
        ),
        _ts("submitted_at"),
        sa.Column("presented_credentials", postgresql.JSONB(), nullable=False),
        sa.Column("proof_data", postgresql.JSONB(), nullable=True),
        sa.UniqueConstraint("proof_request_id", "holder_id"),
    )

    op.create_table(
        "verifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "credential_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("credentials.id"),
            nullable=False,
        ),
        sa.Column(
            "verifier_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("identities.id"),
            nullable=False,
        ),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("trust_score", sa.Integer(), nullable=False),
        _ts("verified_at"),
        sa.Column("failure_reason", sa.Text(), nullable=True),
    )
    op.create_index(
        "ix_verifications_credential_id", "verifications", ["credential_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_verifications_credential_id", table_name="verifications")
    op.drop_table("verifications")
    op.drop_table("proof_responses")
    op.drop_table("proof_requests")
    op.drop_index("ix_credential_templates_name", table_name="credential_templates")
    op.drop_table("credential_templates")
    op.drop_index("ix_credentials_subject_status_issued", table_name="credentials")
    op.drop_table("credentials")
    op.drop_table("identities")
