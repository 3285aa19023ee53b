from alembic import op
import sqlalchemy as sa

revision = "0001_marketplace_foundations"
down_revision = None
branch_labels = None
depends_on = None


def _audit_columns():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column("updated_by", sa.String(), nullable=True),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("full_name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("address", sa.String(length=240), nullable=True),
        sa.Column("role", sa.String(length=30), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="pending"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_audit_columns(),
    )

    op.create_table(
        "api_keys",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("key_prefix", sa.String(length=16), nullable=False),
        sa.Column("key_hash", sa.String(length=64), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("rotated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_api_keys_user_active", "api_keys", ["user_id", "is_active"])
    op.create_index("ix_api_keys_key_prefix", "api_keys", ["key_prefix"])

    op.create_table(
        "listings",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("provider_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(length=140), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=60), nullable=False),
        sa.Column("food_type", sa.String(length=60), nullable=False),
        sa.Column("servings_total", sa.Integer(), nullable=False),
        sa.Column("servings_left", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="available"),
        sa.Column("expiry_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("address", sa.String(length=240), nullable=False),
        *_audit_columns(),
        sa.CheckConstraint(
            "servings_left >= 0 AND servings_left <= servings_total",
            name="ck_listing_servings_bounds",
        ),
    )
    op.create_index("ix_listings_provider_id", "listings", ["provider_id"])
    op.create_index("ix_listings_status", "listings", ["status"])

    op.create_table(
        "requests",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("listing_id", sa.String(), sa.ForeignKey("listings.id"), nullable=False),
        sa.Column("beneficiary_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("requested_servings", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="pending"),
        *_audit_columns(),
    )
    op.create_index("ix_requests_listing_id", "requests", ["listing_id"])
    op.create_index("ix_requests_beneficiary_id", "requests", ["beneficiary_id"])
    op.create_index("ix_requests_status", "requests", ["status"])

    op.create_table(
        "deliveries",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("request_id", sa.String(), sa.ForeignKey("requests.id"), nullable=False),
        sa.Column("delivery_agent_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("pickup_address", sa.String(length=240), nullable=False),
        sa.Column("dropoff_address", sa.String(length=240), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="assigned"),
        sa.Column("picked_up_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("proof_url", sa.String(length=500), nullable=True),
        *_audit_columns(),
        sa.UniqueConstraint("request_id", name="uq_delivery_request"),
    )
    op.create_index("ix_deliveries_delivery_agent_id", "deliveries", ["delivery_agent_id"])
    op.create_index("ix_deliveries_status", "deliveries", ["status"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("actor_user_id", sa.String(), nullable=True),
        sa.Column("action", sa.String(length=120), nullable=False),
        sa.Column("target_type", sa.String(length=40), nullable=False),
        sa.Column("target_id", sa.String(length=64), nullable=False),
        sa.Column("detail", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_audit_logs_target", "audit_logs", ["target_type", "target_id"])

    op.create_table(
        "idempotency_keys",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("key", sa.String(length=200), nullable=False),
        sa.Column("request_path", sa.String(length=300), nullable=False),
        sa.Column("request_hash", sa.String(length=64), nullable=False),
        sa.Column("response", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "key", name="uq_idempotency_user_key"),
    )


def downgrade():
    op.drop_table("idempotency_keys")
    op.drop_index("ix_audit_logs_target", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("ix_deliveries_status", table_name="deliveries")
    op.drop_index("ix_deliveries_delivery_agent_id", table_name="deliveries")
    op.drop_table("deliveries")
    op.drop_index("ix_requests_status", table_name="requests")
    op.drop_index("ix_requests_beneficiary_id", table_name="requests")
    op.drop_index("ix_requests_listing_id", table_name="requests")
    op.drop_table("requests")
    op.drop_index("ix_listings_status", table_name="listings")
    op.drop_index("ix_listings_provider_id", table_name="listings")
    op.drop_table("listings")
    op.drop_index("ix_api_keys_key_prefix", table_name="api_keys")
    op.drop_index("ix_api_keys_user_active", table_name="api_keys")
    op.drop_table("api_keys")
    op.drop_table("users")
