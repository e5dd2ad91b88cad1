"""Classifieds schema: users, organizations, credits, tags, listings, sponsorships.

Revision ID: 0001_classifieds_schema
Revises:
Create Date: 2026-10-18 12:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001_classifieds_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
    ]


def _uuid(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), **kwargs)


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    op.create_table(
        "users",
        _uuid("id", primary_key=True),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("username", sa.Text(), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "organizations",
        _uuid("id", primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("slug", sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_organizations_slug", "organizations", ["slug"], unique=True)
    op.create_index("ix_organizations_name", "organizations", ["name"])

    op.create_table(
        "organization_memberships",
        _uuid("user_id", sa.ForeignKey("users.id"), primary_key=True),
        _uuid("organization_id", sa.ForeignKey("organizations.id"), primary_key=True),
        sa.Column("type_of_user", sa.Text(), nullable=False, server_default="member"),
        *_timestamps(),
    )

    op.create_table(
        "credits",
        _uuid("id", primary_key=True),
        _uuid("user_id", sa.ForeignKey("users.id"), nullable=True),
        _uuid("organization_id", sa.ForeignKey("organizations.id"), nullable=True),
        sa.Column("spent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("spent_at", sa.DateTime(), nullable=True),
        sa.Column("purchase_type", sa.Text(), nullable=True),
        _uuid("purchase_id", nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "(user_id IS NULL) <> (organization_id IS NULL)",
            name="ck_credits_single_owner",
        ),
    )
    op.create_index("ix_credits_user_id", "credits", ["user_id"])
    op.create_index("ix_credits_organization_id", "credits", ["organization_id"])
    op.create_index("ix_credits_spent", "credits", ["spent"])

    op.create_table(
        "tags",
        _uuid("id", primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("supported", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index("ix_tags_name", "tags", ["name"], unique=True)

    op.create_table(
        "listing_categories",
        _uuid("id", primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("slug", sa.Text(), nullable=False),
        sa.Column("cost", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("rules", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_listing_categories_slug", "listing_categories", ["slug"], unique=True)

    op.create_table(
        "classified_listings",
        _uuid("id", primary_key=True),
        _uuid("user_id", sa.ForeignKey("users.id"), nullable=False),
        _uuid("organization_id", sa.ForeignKey("organizations.id"), nullable=True),
        _uuid("category_id", sa.ForeignKey("listing_categories.id"), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("body_markdown", sa.Text(), nullable=False),
        sa.Column("processed_html", sa.Text(), nullable=False, server_default=""),
        sa.Column("cached_tag_list", sa.Text(), nullable=False, server_default=""),
        sa.Column("location", sa.Text(), nullable=True),
        sa.Column("contact_via_connect", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("published", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("bumped_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("originally_published_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_classified_listings_user_id", "classified_listings", ["user_id"])
    op.create_index("ix_classified_listings_organization_id", "classified_listings", ["organization_id"])
    op.create_index("ix_classified_listings_category_id", "classified_listings", ["category_id"])
    op.create_index("ix_classified_listings_published", "classified_listings", ["published"])
    op.create_index("ix_classified_listings_bumped_at", "classified_listings", ["bumped_at"])

    op.create_table(
        "listing_tags",
        _uuid("listing_id", sa.ForeignKey("classified_listings.id"), primary_key=True),
        _uuid("tag_id", sa.ForeignKey("tags.id"), primary_key=True),
    )

    op.create_table(
        "sponsorships",
        _uuid("id", primary_key=True),
        _uuid("organization_id", sa.ForeignKey("organizations.id"), nullable=False),
        _uuid("user_id", sa.ForeignKey("users.id"), nullable=False),
        sa.Column("level", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default="none"),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("instructions", sa.Text(), nullable=False, server_default=""),
        sa.Column("instructions_updated_at", sa.DateTime(), nullable=True),
        _uuid("tag_id", sa.ForeignKey("tags.id"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_sponsorships_organization_id", "sponsorships", ["organization_id"])
    op.create_index("ix_sponsorships_level", "sponsorships", ["level"])
    op.create_index("ix_sponsorships_tag_id", "sponsorships", ["tag_id"])


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    op.drop_table("sponsorships")
    op.drop_table("listing_tags")
    op.drop_table("classified_listings")
    op.drop_table("listing_categories")
    op.drop_table("tags")
    op.drop_table("credits")
    op.drop_table("organization_memberships")
    op.drop_table("organizations")
    op.drop_table("users")
