from app.models.base import Base  # noqa: F401

from app.models.api_key import ApiKey  # noqa: F401
from app.models.form_field import FormField  # noqa: F401
from app.models.media import Media  # noqa: F401
from app.models.term import Term, TermMeta  # noqa: F401
from app.models.listing import Listing, ListingMeta, ListingTerm  # noqa: F401
from app.models.option import Option  # noqa: F401
