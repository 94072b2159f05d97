"""Governance core — roster slice, policy binding, decisions, audit, induction

Revision ID: a1c0d2e3f401
Revises:
Create Date: 2026-10-18 09:00:00.000000

Changes:
  - Create org_units, stations, shifts, shift_assignments (read-only roster slice)
  - Create policy_templates, unit_policies, shift_policy_snapshots
  - Create execution_decisions with partial unique index on active targets
  - Create governance_events (unique idempotency_key)
  - Create induction_checkpoints, employee_induction, employee_induction_completions
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "a1c0d2e3f401"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ── Roster slice ──
    op.create_table(
        "org_units",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("org_id", sa.String(36), nullable=False, index=True),
        sa.Column("site_id", sa.String(36), nullable=True, index=True),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "stations",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("org_id", sa.String(36), nullable=False, index=True),
        sa.Column("site_id", sa.String(36), nullable=True, index=True),
        sa.Column("org_unit_id", sa.String(36),
                  sa.ForeignKey("org_units.id", ondelete="SET NULL"),
                  nullable=True, index=True,
                  comment="NULL = not yet assigned to a unit; blocks policy binding"),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("line", sa.String(50), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "shifts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("org_id", sa.String(36), nullable=False, index=True),
        sa.Column("site_id", sa.String(36), nullable=True, index=True),
        sa.Column("shift_date", sa.Date(), nullable=False),
        sa.Column("shift_code", sa.String(20), nullable=False),
        sa.Column("line", sa.String(50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_shifts_scope", "shifts", ["org_id", "shift_date", "shift_code"])
    op.create_table(
        "shift_assignments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("org_id", sa.String(36), nullable=False, index=True),
        sa.Column("shift_id", sa.String(36),
                  sa.ForeignKey("shifts.id", ondelete="CASCADE"),
                  nullable=False, index=True),
        sa.Column("station_id", sa.String(36),
                  sa.ForeignKey("stations.id", ondelete="CASCADE"),
                  nullable=False, index=True),
        sa.Column("employee_id", sa.String(36), nullable=True, index=True),
    )

    # ── Policy binding ──
    op.create_table(
        "policy_templates",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("org_id", sa.String(36), nullable=False, index=True),
        sa.Column("industry_type", sa.String(50), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("weight_config", sa.JSON(), nullable=True),
        sa.Column("threshold_config", sa.JSON(), nullable=True),
        sa.Column("penalty_config", sa.JSON(), nullable=True),
        sa.Column("feasibility_config", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "unit_policies",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("org_id", sa.String(36), nullable=False, index=True),
        sa.Column("unit_id", sa.String(36),
                  sa.ForeignKey("org_units.id", ondelete="CASCADE"), nullable=False),
        sa.Column("template_id", sa.String(36),
                  sa.ForeignKey("policy_templates.id", ondelete="CASCADE"), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("effective_from", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_unit_policies_active", "unit_policies", ["unit_id", "active", "effective_from"])
    op.create_table(
        "shift_policy_snapshots",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("shift_id", sa.String(36),
                  sa.ForeignKey("shifts.id", ondelete="CASCADE"),
                  nullable=False, index=True),
        sa.Column("unit_id", sa.String(36), nullable=False),
        sa.Column("industry_type", sa.String(50), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("config_hash", sa.String(64), nullable=False,
                  comment="sha256 of the four config blobs"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("shift_id", "unit_id", "version", name="uq_shift_policy_snapshot"),
    )

    # ── Decision ledger ──
    op.create_table(
        "execution_decisions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("org_id", sa.String(36), nullable=False, index=True),
        sa.Column("site_id", sa.String(36), nullable=True, index=True),
        sa.Column("decision_type", sa.String(50), nullable=False),
        sa.Column("target_type", sa.String(50), nullable=False),
        sa.Column("target_id", sa.String(64), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("root_cause", sa.JSON(), nullable=True),
        sa.Column("actions", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_by", sa.String(36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "uq_execution_decisions_active_target",
        "execution_decisions",
        ["decision_type", "target_type", "target_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )
    op.create_index("ix_execution_decisions_lookup", "execution_decisions",
                    ["org_id", "target_type", "target_id"])

    # ── Governance audit trail ──
    op.create_table(
        "governance_events",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("org_id", sa.String(36), nullable=False, index=True),
        sa.Column("site_id", sa.String(36), nullable=True, index=True),
        sa.Column("actor_user_id", sa.String(36), nullable=True, index=True),
        sa.Column("action", sa.String(60), nullable=False),
        sa.Column("target_type", sa.String(50), nullable=False),
        sa.Column("target_id", sa.String(64), nullable=True),
        sa.Column("outcome", sa.String(30), nullable=False, server_default="RECORDED"),
        sa.Column("legitimacy_status", sa.String(30), nullable=True),
        sa.Column("readiness_status", sa.String(30), nullable=True),
        sa.Column("reason_codes", sa.JSON(), nullable=False),
        sa.Column("meta", sa.JSON(), nullable=False),
        sa.Column("idempotency_key", sa.String(255), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_gov_events_target", "governance_events", ["target_type", "target_id"])
    op.create_index("idx_gov_events_action", "governance_events", ["action"])
    op.create_index("idx_gov_events_ts", "governance_events", ["created_at"])

    # ── Induction gate ──
    op.create_table(
        "induction_checkpoints",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("org_id", sa.String(36), nullable=False, index=True),
        sa.Column("site_id", sa.String(36), nullable=True, index=True, comment="NULL = org-wide"),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("stage", sa.String(50), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("revision", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("org_id", "site_id", "code", name="uq_induction_checkpoint_code"),
    )
    op.create_table(
        "employee_induction",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("org_id", sa.String(36), nullable=False, index=True),
        sa.Column("site_id", sa.String(36), nullable=False),
        sa.Column("employee_id", sa.String(36), nullable=False, index=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="RESTRICTED"),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("cleared_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.String(36), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("org_id", "site_id", "employee_id", name="uq_employee_induction_site"),
    )
    op.create_table(
        "employee_induction_completions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("org_id", sa.String(36), nullable=False, index=True),
        sa.Column("site_id", sa.String(36), nullable=False),
        sa.Column("employee_id", sa.String(36), nullable=False, index=True),
        sa.Column("checkpoint_id", sa.String(36),
                  sa.ForeignKey("induction_checkpoints.id", ondelete="CASCADE"),
                  nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_by", sa.String(36), nullable=True),
        sa.UniqueConstraint("employee_id", "checkpoint_id", name="uq_induction_completion"),
    )


def downgrade():
    op.drop_table("employee_induction_completions")
    op.drop_table("employee_induction")
    op.drop_table("induction_checkpoints")
    op.drop_index("idx_gov_events_ts", table_name="governance_events")
    op.drop_index("idx_gov_events_action", table_name="governance_events")
    op.drop_index("idx_gov_events_target", table_name="governance_events")
    op.drop_table("governance_events")
    op.drop_index("ix_execution_decisions_lookup", table_name="execution_decisions")
    op.drop_index("uq_execution_decisions_active_target", table_name="execution_decisions")
    op.drop_table("execution_decisions")
    op.drop_table("shift_policy_snapshots")
    op.drop_index("ix_unit_policies_active", table_name="unit_policies")
    op.drop_table("unit_policies")
    op.drop_table("policy_templates")
    op.drop_table("shift_assignments")
    op.drop_index("ix_shifts_scope", table_name="shifts")
    op.drop_table("shifts")
    op.drop_table("stations")
    op.drop_table("org_units")
