from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_create_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("email", sa.String(), nullable=False),
            sa.Column("password_hash", sa.String(), nullable=False),
            sa.Column("role", sa.String(length=20), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_users_id", "users", ["id"], unique=False)
        op.create_index("ix_users_email", "users", ["email"], unique=True)

    if not inspector.has_table("organizations"):
        op.create_table(
            "organizations",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("address", sa.String(), nullable=True),
            sa.Column("neighborhood", sa.String(), nullable=True),
            sa.Column("logo_url", sa.String(), nullable=True),
            sa.Column("subscription_status", sa.String(length=20), nullable=False, server_default="trial"),
            sa.Column("max_employees", sa.Integer(), nullable=True),
            sa.Column("goals", sa.JSON(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_organizations_id", "organizations", ["id"], unique=False)

    if not inspector.has_table("worker_profiles"):
        op.create_table(
            "worker_profiles",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column(
                "organization_id",
                sa.Integer(),
                sa.ForeignKey("organizations.id", ondelete="SET NULL"),
                nullable=True,
            ),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("position", sa.String(length=20), nullable=False, server_default="other"),
            sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.UniqueConstraint("user_id", name="uq_worker_profiles_user_id"),
        )
        op.create_index("ix_worker_profiles_id", "worker_profiles", ["id"], unique=False)
        op.create_index("ix_worker_profiles_organization_id", "worker_profiles", ["organization_id"], unique=False)

    if not inspector.has_table("restaurant_profiles"):
        op.create_table(
            "restaurant_profiles",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column(
                "organization_id",
                sa.Integer(),
                sa.ForeignKey("organizations.id", ondelete="SET NULL"),
                nullable=True,
            ),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("address", sa.String(), nullable=True),
            sa.Column("logo_url", sa.String(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.UniqueConstraint("user_id", name="uq_restaurant_profiles_user_id"),
        )
        op.create_index("ix_restaurant_profiles_id", "restaurant_profiles", ["id"], unique=False)
        op.create_index(
            "ix_restaurant_profiles_organization_id",
            "restaurant_profiles",
            ["organization_id"],
            unique=False,
        )

    if not inspector.has_table("promotions"):
        op.create_table(
            "promotions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "organization_id",
                sa.Integer(),
                sa.ForeignKey("organizations.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("title", sa.String(), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("image_url", sa.String(), nullable=True),
            sa.Column("discount_type", sa.String(length=30), nullable=False),
            sa.Column("discount_value", sa.String(length=50), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="draft"),
            sa.Column("start_date", sa.DateTime(), nullable=True),
            sa.Column("end_date", sa.DateTime(), nullable=True),
            sa.Column("max_claims", sa.Integer(), nullable=True),
            sa.Column("current_claims", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("impressions", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_promotions_id", "promotions", ["id"], unique=False)
        op.create_index("ix_promotions_organization_id", "promotions", ["organization_id"], unique=False)
        op.create_index("ix_promotions_status", "promotions", ["status"], unique=False)

    if not inspector.has_table("claims"):
        op.create_table(
            "claims",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "promotion_id",
                sa.Integer(),
                sa.ForeignKey("promotions.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column(
                "worker_id",
                sa.Integer(),
                sa.ForeignKey("worker_profiles.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("code", sa.String(length=32), nullable=False),
            sa.Column("claimed_at", sa.DateTime(), nullable=False),
            sa.Column("expires_at", sa.DateTime(), nullable=False),
            sa.Column("is_redeemed", sa.Boolean(), nullable=False, server_default=sa.false()),
        )
        op.create_index("ix_claims_id", "claims", ["id"], unique=False)
        op.create_index("ix_claims_code", "claims", ["code"], unique=True)
        op.create_index("ix_claims_promotion_id", "claims", ["promotion_id"], unique=False)
        op.create_index("ix_claims_worker_id", "claims", ["worker_id"], unique=False)

    if not inspector.has_table("redemptions"):
        op.create_table(
            "redemptions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("claim_id", sa.Integer(), sa.ForeignKey("claims.id", ondelete="CASCADE"), nullable=False),
            sa.Column(
                "redeemed_by_user_id",
                sa.Integer(),
                sa.ForeignKey("users.id", ondelete="SET NULL"),
                nullable=True,
            ),
            sa.Column("redeemed_at", sa.DateTime(), nullable=False),
            sa.UniqueConstraint("claim_id", name="uq_redemptions_claim_id"),
        )
        op.create_index("ix_redemptions_id", "redemptions", ["id"], unique=False)

    if not inspector.has_table("invite_tokens"):
        op.create_table(
            "invite_tokens",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("token", sa.String(length=64), nullable=False),
            sa.Column("invite_type", sa.String(length=20), nullable=False, server_default="admin"),
            sa.Column(
                "organization_id",
                sa.Integer(),
                sa.ForeignKey("organizations.id", ondelete="CASCADE"),
                nullable=True,
            ),
            sa.Column(
                "created_by_user_id",
                sa.Integer(),
                sa.ForeignKey("users.id", ondelete="SET NULL"),
                nullable=True,
            ),
            sa.Column("max_uses", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("current_uses", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("expires_at", sa.DateTime(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_invite_tokens_id", "invite_tokens", ["id"], unique=False)
        op.create_index("ix_invite_tokens_token", "invite_tokens", ["token"], unique=True)

    if not inspector.has_table("audit_logs"):
        op.create_table(
            "audit_logs",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("actor_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("action", sa.String(), nullable=False),
            sa.Column("subject", sa.String(), nullable=False),
            sa.Column("details", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_audit_logs_id", "audit_logs", ["id"], unique=False)
        op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"], unique=False)
        op.create_index("ix_audit_logs_action", "audit_logs", ["action"], unique=False)
        op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"], unique=False)

    if not inspector.has_table("login_attempts"):
        op.create_table(
            "login_attempts",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("email", sa.String(), nullable=False),
            sa.Column("failed_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("first_failed_at", sa.DateTime(), nullable=True),
            sa.Column("last_failed_at", sa.DateTime(), nullable=True),
            sa.Column("locked_until", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_login_attempts_id", "login_attempts", ["id"], unique=False)
        op.create_index("ix_login_attempts_email", "login_attempts", ["email"], unique=True)


def downgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    for table in (
        "login_attempts",
        "audit_logs",
        "invite_tokens",
        "redemptions",
        "claims",
        "promotions",
        "restaurant_profiles",
        "worker_profiles",
        "organizations",
        "users",
    ):
        if inspector.has_table(table):
            op.drop_table(table)
