"""
Error taxonomy shared by the repository, the cart cache and the HTTP boundary.

- ValidationError: malformed identifier, request body or missing parameter.
  Raised at the boundary only; never reaches the store layer.
- NotFoundError: no matching product, no cached cart ("absent").
- FormatError: a stored array value is not in the expected wire format.
  Surfaces to callers as ExecutionError.
- ExecutionError: store connectivity / timeout / write failure, payload
  (de)serialization failure, row decode failure ("failed").
"""


class CatalogError(Exception):
    """Base class for all catalog service errors."""


class ValidationError(CatalogError):
    pass


class NotFoundError(CatalogError):
    pass


class FormatError(CatalogError):
    pass


class ExecutionError(CatalogError):
    pass
