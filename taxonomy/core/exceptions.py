"""Errors raised by the taxonomy core.

Each error carries the HTTP-equivalent status code a caller should use when
presenting it. Validation problems are not raised; they come back as
``ok=False`` service responses.
"""


class TaxonomyError(Exception):
    """Base class for taxonomy business errors."""

    status_code: int = 400

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class TaxonomyNotFoundError(TaxonomyError):
    """Raised when an id does not resolve to a taxonomy node."""

    status_code = 404

    def __init__(self, taxonomy_id: int) -> None:
        super().__init__(f"Taxonomy not found: {taxonomy_id}")
        self.taxonomy_id = taxonomy_id


class CannotMakeParentSubsetOwnChildError(TaxonomyError):
    """Raised when a node would be moved under itself or one of its descendants."""

    status_code = 400

    def __init__(self, taxonomy_id: int, parent_id: int) -> None:
        super().__init__(
            f"Cannot make taxonomy {taxonomy_id} a child of its own descendant {parent_id}"
        )
        self.taxonomy_id = taxonomy_id
        self.parent_id = parent_id


class TaxonomyUsedError(TaxonomyError):
    """Raised when deleting a node (or subtree) that is still in use."""

    status_code = 409

    def __init__(self, name: str, taxonomy_id: int | None = None) -> None:
        super().__init__(f"Taxonomy '{name}' is in use and cannot be deleted")
        self.name = name
        self.taxonomy_id = taxonomy_id


class UnknownTaxonomyTypeError(TaxonomyError):
    """Raised when a taxonomy type is not registered."""

    status_code = 400

    def __init__(self, type_name: str) -> None:
        super().__init__(f"Taxonomy type not registered: {type_name}")
        self.type_name = type_name


class InvalidQueryFieldError(TaxonomyError):
    """Raised when a listing is asked to filter, sort or load an unknown field."""

    status_code = 400

    def __init__(self, kind: str, field: str, allowed: list[str]) -> None:
        super().__init__(
            f"Invalid {kind} field '{field}'. Allowed: {', '.join(sorted(allowed))}"
        )
        self.kind = kind
        self.field = field
        self.allowed = allowed


class PathIntegrityError(TaxonomyError):
    """Raised when a recombined ancestor chain would break the closure invariant."""

    status_code = 500
