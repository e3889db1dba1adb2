"""
Base repository class providing common database operations.

Model-specific repositories inherit from `BaseRepository` to get generic CRUD on top of
an `AsyncSession`, and add their own queries next to it.

Transactions are owned by the caller: repositories `flush()` so ids and server defaults
are available, but never `commit()`. A service (or a test) decides when a unit of work
is complete.
"""
import time
import logging
from typing import TypeVar, Generic, Type, Any

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from forum.database.base import Base
from forum.exceptions.base import (
    RepositoryError,
    DuplicateError,
    NotFoundError,
    InvalidFieldError,
)
from forum.exceptions.mapper import db_error_handler
from forum.validators.model_validators import (
    find_unknown_model_kwargs,
    get_required_columns,
    find_unique_conflicts,
)

# Type variable for the model class
ModelType = TypeVar("ModelType", bound=Base)

logger = logging.getLogger(__name__)


class BaseRepository(Generic[ModelType]):
    """
    Generic base repository providing common CRUD operations.

    Type Parameters:
        ModelType: The SQLAlchemy model class this repository manages.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        """
        Args:
            model: The SQLAlchemy model class (e.g. Conversation, not Conversation()).
            db: The async database session.
        """
        self.model = model
        self.db = db

    # =================================================================================================================
    # Basic Create Operations
    # =================================================================================================================

    async def create(self, **kwargs) -> ModelType:
        """
        Create an entity with validation + DB write. Logging:
        - DEBUG: start event with model name and provided keys (not values).
        - INFO: expected domain errors (invalid fields, missing required, duplicate).
        - INFO: success event with created id and duration_ms.

        Raises:
            InvalidFieldError: unknown keyword for the model.
            RepositoryError: a NOT NULL column without default is missing.
            DuplicateError: a unique column (set) already holds these values.
        """
        model_name = self.model.__name__
        logger.debug(
            "repo.create.start",
            extra={"model": model_name, "operation": "create", "provided_keys": sorted(kwargs)},
        )

        unknown = find_unknown_model_kwargs(self.model, kwargs)
        if unknown:
            logger.info(
                "repo.create.invalid_fields",
                extra={"model": model_name, "operation": "create", "invalid_fields": sorted(unknown)},
            )
            raise InvalidFieldError(f"Unknown field(s) for {model_name}: {', '.join(unknown)}", fields=unknown)

        # NOT NULL columns: missing or explicitly None both count
        missing = [c for c in get_required_columns(self.model) if kwargs.get(c) is None]
        if missing:
            logger.info(
                "repo.create.missing_required",
                extra={"model": model_name, "operation": "create", "missing_fields": sorted(missing)},
            )
            raise RepositoryError(f"Missing required field(s): {', '.join(missing)} for {model_name}", fields=missing)

        conflicts = sorted(await find_unique_conflicts(self.db, self.model, kwargs))
        if conflicts:
            logger.info(
                "repo.create.duplicate_precheck",
                extra={"model": model_name, "operation": "create", "conflict_fields": conflicts},
            )
            raise DuplicateError(f"{model_name} already exists for field(s): {', '.join(conflicts)}", fields=conflicts)

        start = time.perf_counter()
        async with db_error_handler(self.db, model_name):
            entity = self.model(**kwargs)
            self.db.add(entity)
            # flush sends the INSERT inside the open transaction; refresh loads server defaults
            await self.db.flush()
            await self.db.refresh(entity)

        logger.info(
            "repo.create.success",
            extra={
                "model": model_name,
                "operation": "create",
                "id": getattr(entity, "id", None),
                "duration_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return entity

    # =================================================================================================================
    # Basic Read Operations (Single Entity)
    # =================================================================================================================

    async def get_by_id(self, entity_id: int) -> ModelType | None:
        """
        Get an entity by its ID.

        Returns:
            The entity if found, otherwise None

        Raises:
            RepositoryError: If an error occurs during retrieval.
        """
        try:
            result = await self.db.execute(select(self.model).where(self.model.id == entity_id))
            entity = result.scalar_one_or_none()
            logger.debug(f"Retrieved {self.model.__name__} by ID: {entity_id}")
            return entity

        except Exception as e:
            logger.error(f"Error retrieving {self.model.__name__} by ID {entity_id}: {e}")
            raise RepositoryError(f"Failed to retrieve {self.model.__name__}") from e

    async def get_by_id_or_raise(self, entity_id: int) -> ModelType:
        """
        Get an entity by its ID or raise NotFoundError.
        """
        entity = await self.get_by_id(entity_id)
        if entity is None:
            raise NotFoundError(f"{self.model.__name__} with ID {entity_id} not found")
        return entity

    async def find_by_field(self, field: str, value: Any) -> ModelType | None:
        """
        Find a single entity by any field.

        Raises:
            RepositoryError: If the field does not exist on the model or query fails
        """
        if not hasattr(self.model, field):
            raise RepositoryError(f"{self.model.__name__} has no field '{field}'")

        try:
            query = select(self.model).where(getattr(self.model, field) == value).limit(1)
            result = await self.db.execute(query)
            entity = result.scalar_one_or_none()
            logger.debug(f"Found {self.model.__name__} by {field}: {value}")
            return entity

        except Exception as e:
            logger.error(f"Error finding {self.model.__name__} by {field}={value}: {e}")
            raise RepositoryError(f"Failed to find {self.model.__name__}") from e

    # =================================================================================================================
    # Basic Read Operations (Multiple Entities)
    # =================================================================================================================

    async def get_all(
        self,
        offset: int = 0,
        limit: int = 100,
        order_by: str | None = None
    ) -> list[ModelType]:
        """
        Get all entities with optional ordering and pagination.

        Args:
            offset: Number of entities to skip.
            limit: Maximum number of entities to return.
            order_by: Field name to order by (ascending). Defaults to newest first
                (`created_at DESC`) when the model has that column. Unknown fields
                are ignored with a warning.
        """
        try:
            query = select(self.model)

            if order_by:
                if hasattr(self.model, order_by):
                    query = query.order_by(getattr(self.model, order_by))
                else:
                    logger.warning(
                        f"Ignored invalid 'order_by' field: '{order_by}' does not exist on {self.model.__name__}")
            elif hasattr(self.model, "created_at"):
                # id breaks ties between rows inserted within the same clock tick
                query = query.order_by(self.model.created_at.desc(), self.model.id.desc())

            result = await self.db.execute(query.offset(offset).limit(limit))
            entities = list(result.scalars().all())
            logger.debug(f"Retrieved {len(entities)} {self.model.__name__} entities")
            return entities

        except Exception as e:
            logger.error(f"Error retrieving all {self.model.__name__}: {e}")
            raise RepositoryError(f"Failed to retrieve {self.model.__name__} entities") from e

    # =================================================================================================================
    # Update Operations
    # =================================================================================================================

    async def update(self, entity_id: int, **kwargs) -> ModelType | None:
        """
        Update an entity by its ID.

        Values are assigned on the loaded instance and flushed through the unit of work
        (not a bulk UPDATE), so mapper events such as the search-index delta hook fire
        and `onupdate` timestamps are applied.

        Args:
            entity_id: The ID of the entity to update
            **kwargs: Fields and values to update. `None` values are skipped.

        Returns:
            The updated entity if found, None otherwise

        Raises:
            InvalidFieldError: If a keyword is not a mapped attribute of the model
            DuplicateError: If update would violate unique constraints
            RepositoryError: For other database errors
        """
        unknown = find_unknown_model_kwargs(self.model, kwargs)
        if unknown:
            raise InvalidFieldError(f"Unknown field(s) for {self.model.__name__}: {', '.join(unknown)}", fields=unknown)

        update_data = {k: v for k, v in kwargs.items() if v is not None}

        entity = await self.get_by_id(entity_id)
        if entity is None:
            logger.warning(f"{self.model.__name__} with ID {entity_id} not found for update")
            return None

        if not update_data:
            logger.warning(f"No valid data provided for updating {self.model.__name__}")
            return entity

        async with db_error_handler(self.db, self.model.__name__):
            for field, value in update_data.items():
                setattr(entity, field, value)
            await self.db.flush()
            await self.db.refresh(entity)

        logger.debug(
            "repo.update.success",
            extra={"model": self.model.__name__, "id": entity_id, "fields": sorted(update_data)},
        )
        return entity

    # =================================================================================================================
    # Delete Operations
    # =================================================================================================================

    async def delete(self, entity_id: int) -> bool:
        """
        Delete an entity by its ID.

        Returns:
            True if entity was deleted, False if not found (deletion is idempotent)
        """
        async with db_error_handler(self.db, self.model.__name__):
            result = await self.db.execute(delete(self.model).where(self.model.id == entity_id))

        if result.rowcount > 0:
            logger.debug(f"Deleted {self.model.__name__} with ID: {entity_id}")
            return True

        logger.warning(f"{self.model.__name__} with ID {entity_id} not found for deletion")
        return False

    # =================================================================================================================
    # Validation / Existence Checks
    # =================================================================================================================

    async def exists(self, entity_id: int) -> bool:
        try:
            result = await self.db.execute(select(self.model.id).where(self.model.id == entity_id))
            exists = result.scalar() is not None
            logger.debug(f"{self.model.__name__} with ID {entity_id} exists: {exists}")
            return exists

        except Exception as e:
            logger.error(f"Error checking existence of {self.model.__name__} {entity_id}: {e}")
            raise RepositoryError(f"Failed to check {self.model.__name__} existence") from e

    # =================================================================================================================
    # Aggregation / Count Operations
    # =================================================================================================================

    async def count(self, **filters: Any) -> int:
        """
        Count entities with optional equality filters (e.g. private=False).

        Filters naming an unknown field, or with a None value, are skipped.
        """
        try:
            query = select(func.count(self.model.id))
            for field, value in filters.items():
                if hasattr(self.model, field) and value is not None:
                    query = query.where(getattr(self.model, field) == value)

            result = await self.db.execute(query)
            count = result.scalar() or 0
            logger.debug(f"Counted {count} {self.model.__name__} entities")
            return count

        except Exception as e:
            logger.error(f"Error counting {self.model.__name__}: {e}")
            raise RepositoryError(f"Failed to count {self.model.__name__} entities") from e


# BaseRepository Method Summary
# | Method Name                        | Returns                                 | Notes                                                    |
# | ---------------------------------- | --------------------------------------- | -------------------------------------------------------- |
# | `create(**kwargs)`                 | The created model instance              | Pre-checks fields, required columns and unique sets      |
# | `get_by_id(entity_id)`             | Model instance or `None`                |                                                          |
# | `get_by_id_or_raise(id)`           | Model instance                          | Raises `NotFoundError`                                   |
# | `find_by_field(field, value)`      | Model instance or `None`                | First match; raises on unknown field                     |
# | `get_all(offset, limit, order_by)` | List of model instances                 | Newest first by default                                  |
# | `update(id, **kwargs)`             | Updated model or `None`                 | Goes through the ORM so mapper events fire               |
# | `delete(entity_id)`                | `True` if deleted, `False` if not found |                                                          |
# | `exists(entity_id)`                | `True` / `False`                        | Selects only the id column                               |
# | `count(**filters)`                 | Integer count                           | Equality filters only                                    |
