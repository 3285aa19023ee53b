from alembic import op
import sqlalchemy as sa

revision = "0002_listing_coordinates"
down_revision = "0001_marketplace_foundations"
branch_labels = None
depends_on = None


def upgrade():
    op.add_column("listings", sa.Column("latitude", sa.Float(), nullable=True))
    op.add_column("listings", sa.Column("longitude", sa.Float(), nullable=True))


def downgrade():
    op.drop_column("listings", "longitude")
    op.drop_column("listings", "latitude")
