"""Generation jobs, artifacts and persona references."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20261019_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "generation_jobs",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("persona", sa.String(length=64), nullable=False),
        sa.Column("mode", sa.String(length=16), nullable=False),
        sa.Column("platform", sa.String(length=32), nullable=False),
        sa.Column("source_url", sa.Text(), nullable=False),
        sa.Column("shot_type", sa.Text()),
        sa.Column("settings", sa.JSON(), nullable=False),
        sa.Column("provider", sa.String(length=64)),
        sa.Column(
            "status", sa.String(length=16), nullable=False, server_default="pending"
        ),
        sa.Column("error_message", sa.Text()),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("media_generation_id", sa.String(length=64)),
    )
    op.create_index(
        "idx_generation_jobs_status", "generation_jobs", ["status", "created_at"]
    )

    op.create_table(
        "media_generations",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column(
            "job_id",
            sa.String(length=64),
            sa.ForeignKey("generation_jobs.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("persona", sa.String(length=64), nullable=False),
        sa.Column("content_type", sa.String(length=16), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("storage_path", sa.String(length=512)),
        sa.Column("model_used", sa.String(length=128), nullable=False),
        sa.Column("prompt", sa.Text()),
        sa.Column("settings", sa.JSON(), nullable=False),
        sa.Column("quality_tier", sa.String(length=16)),
        sa.Column(
            "status", sa.String(length=16), nullable=False, server_default="completed"
        ),
        sa.Column("shot_type", sa.Text()),
        sa.Column("nsfw_level", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("aspect_ratio", sa.Text()),
        sa.Column("resolution", sa.Text()),
        sa.Column("metadata_json", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )

    op.create_table(
        "influencer_profiles",
        sa.Column("persona", sa.String(length=64), primary_key=True),
        sa.Column("full_name", sa.String(length=128)),
        sa.Column("nickname", sa.String(length=64)),
        sa.Column("age", sa.Integer()),
        sa.Column("nationality", sa.String(length=64)),
        sa.Column("backstory", sa.Text()),
        sa.Column("archetype", sa.String(length=128)),
        sa.Column("aesthetic", sa.JSON()),
        sa.Column("physical_traits", sa.JSON()),
    )

    op.create_table(
        "influencer_references",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("persona", sa.String(length=64), nullable=False),
        sa.Column("category", sa.String(length=16), nullable=False),
        sa.Column("shot_type", sa.String(length=16), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=False),
        sa.Column("weight", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "is_active", sa.Boolean(), nullable=False, server_default=sa.text("TRUE")
        ),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index(
        "idx_influencer_ref_lookup",
        "influencer_references",
        ["persona", "category", "shot_type", "is_active"],
    )


def downgrade() -> None:
    op.drop_index("idx_influencer_ref_lookup", table_name="influencer_references")
    op.drop_table("influencer_references")
    op.drop_table("influencer_profiles")
    op.drop_table("media_generations")
    op.drop_index("idx_generation_jobs_status", table_name="generation_jobs")
    op.drop_table("generation_jobs")
