# SQLModel definitions, imported here so the metadata is complete for create_all and Alembic.
from .base import UUIDMixin, TimestampMixin  # noqa: F401
from .user import User  # noqa: F401
from .organization import Organization, OrganizationMembership  # noqa: F401
from .credit import Credit  # noqa: F401
from .tag import Tag  # noqa: F401
from .listing import ListingCategory, ClassifiedListing, ListingTag  # noqa: F401
from .sponsorship import Sponsorship  # noqa: F401
