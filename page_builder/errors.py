# errors.py
"""Error kinds raised by the page builder services.

``NotFound``, ``InvalidReference``, ``ValidationError`` and
``CrossScopeViolation`` are caller errors: they are raised before any write
lands (or inside the transaction, which is then rolled back).
``UpstreamUnavailable`` signals a failed or timed-out content query.
"""


class PageBuilderError(Exception):
    """Base class for every page builder error."""


class NotFound(PageBuilderError, LookupError):
    """A page, zone, zone definition, placement or content item does not exist."""


class InvalidReference(PageBuilderError, ValueError):
    """Content type and content reference disagree, or nothing is referenced."""


class ValidationError(PageBuilderError, ValueError):
    """Malformed identifiers, payloads or positions."""


class CrossScopeViolation(PageBuilderError):
    """An entity does not belong to the zone or page it was addressed through."""


class UpstreamUnavailable(PageBuilderError):
    """The content repository query failed or timed out."""
