# forum/exceptions/
# ├── base.py      # app-level errors (RepositoryError, DuplicateError, ValidationError, ...)
# └── mapper.py    # classify SQLAlchemy IntegrityErrors and map them to app-level errors

from .base import (
    RepositoryError,
    NotFoundError,
    DuplicateError,
    InvalidFieldError,
    InvalidInputError,
    ValidationError,
)

__all__ = [
    "RepositoryError",
    "NotFoundError",
    "DuplicateError",
    "InvalidFieldError",
    "InvalidInputError",
    "ValidationError",
]
