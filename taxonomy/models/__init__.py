"""SQLAlchemy models for the taxonomy service.

Nodes, the closure table and usage relations are owned by this service.
Translations, metas, media relations and urls back the default capability
implementations and are keyed by (owner type, owner id).
"""

from taxonomy.models.base import Base, TimestampMixin
from taxonomy.models.media_relation import MediaRelation
from taxonomy.models.meta import Meta
from taxonomy.models.taxonomy import MORPH_TYPE, Taxonomy
from taxonomy.models.taxonomy_path import TaxonomyPath
from taxonomy.models.taxonomy_relation import TaxonomyRelation
from taxonomy.models.translation import Translation
from taxonomy.models.url import Url

__all__ = [
    "Base",
    "TimestampMixin",
    "MORPH_TYPE",
    "MediaRelation",
    "Meta",
    "Taxonomy",
    "TaxonomyPath",
    "TaxonomyRelation",
    "Translation",
    "Url",
]
