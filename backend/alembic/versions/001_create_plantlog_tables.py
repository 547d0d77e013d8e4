"""Create PlantLog tables

Revision ID: 001
Revises: None
Create Date: 2024-06-01 00:00:00.000000+00:00

What:  Enables PostGIS and creates researcher, sampling_location,
       plant_sample and environmental_condition with their indexes.
How:   UUID primary keys (gen_random_uuid), TIMESTAMP WITH TIME ZONE,
       JSONB for free-form fields, geography(POINT, 4326) for coordinates.

Rollback: downgrade() drops all four tables. The postgis extension stays.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from geoalchemy2 import Geography
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS postgis")

    op.create_table(
        "researcher",
        sa.Column(
            "researcher_id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column(
            "auth_id",
            sa.String(255),
            nullable=True,
            comment="External identity subject (JWT sub)",
        ),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("affiliation", sa.String(255), nullable=True),
        sa.Column(
            "contact",
            postgresql.JSONB(),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("researcher_id"),
        sa.UniqueConstraint("auth_id", name="uq_researcher_auth_id"),
    )
    op.create_index("idx_researcher_created_at", "researcher", [sa.text("created_at DESC")])

    op.create_table(
        "sampling_location",
        sa.Column(
            "location_id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("region", sa.String(255), nullable=True),
        sa.Column("municipality", sa.String(255), nullable=True),
        sa.Column("province", sa.String(255), nullable=True),
        sa.Column("country", sa.String(255), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        sa.Column(
            "coordinates",
            Geography(geometry_type="POINT", srid=4326, spatial_index=False),
            nullable=True,
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("location_id"),
    )
    op.create_index("idx_sampling_location_created_at", "sampling_location", [sa.text("created_at DESC")])
    op.create_index(
        "idx_sampling_location_coordinates",
        "sampling_location",
        ["coordinates"],
        postgresql_using="gist",
    )

    op.create_table(
        "plant_sample",
        sa.Column(
            "sample_id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("scientific_name", sa.String(255), nullable=False),
        sa.Column("common_name", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "sample_date",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column("location_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("researcher_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("attributes", postgresql.JSONB(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("sample_id"),
        sa.ForeignKeyConstraint(
            ["location_id"], ["sampling_location.location_id"], ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["researcher_id"], ["researcher.researcher_id"], ondelete="SET NULL",
        ),
    )
    op.create_index("idx_plant_sample_created_at", "plant_sample", [sa.text("created_at DESC")])
    op.create_index("idx_plant_sample_sample_date", "plant_sample", [sa.text("sample_date DESC")])
    op.create_index("ix_plant_sample_location_id", "plant_sample", ["location_id"])
    op.create_index("ix_plant_sample_researcher_id", "plant_sample", ["researcher_id"])

    op.create_table(
        "environmental_condition",
        sa.Column(
            "environment_id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("sample_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("temperature", sa.Float(), nullable=True),
        sa.Column("humidity", sa.Float(), nullable=True),
        sa.Column("soil_type", sa.String(100), nullable=True),
        sa.Column("soil_ph", sa.Float(), nullable=True),
        sa.Column("altitude", sa.Float(), nullable=True),
        sa.Column("extra", postgresql.JSONB(), nullable=True),
        sa.Column(
            "recorded_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("environment_id"),
        sa.ForeignKeyConstraint(
            ["sample_id"], ["plant_sample.sample_id"], ondelete="CASCADE",
        ),
    )
    op.create_index("ix_environmental_condition_sample_id", "environmental_condition", ["sample_id"])
    op.create_index("idx_environmental_condition_recorded_at", "environmental_condition", ["recorded_at"])


def downgrade() -> None:
    """Drops every PlantLog table. All data is lost."""
    op.drop_table("environmental_condition")
    op.drop_table("plant_sample")
    op.drop_table("sampling_location")
    op.drop_table("researcher")
