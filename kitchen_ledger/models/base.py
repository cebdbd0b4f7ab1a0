"""
Base model class for all database models.

Provides common functionality and fields for all models:
- Primary key
- Timestamp fields (created_at, updated_at)
- Utility methods (to_dict, update_from_dict)
- SQLAlchemy declarative base

Column names follow the field names the surrounding application exchanges
(``nombre``, ``stock_actual``...), so ``to_dict()`` output can be fed straight
into the record adapters in ``kitchen_ledger.services.record_adapters``.
"""

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import Column, Integer, DateTime
from sqlalchemy.orm import declarative_base

from kitchen_ledger.utils.datetime_utils import utc_now

# Create the declarative base for all models
Base = declarative_base()


class BaseModel(Base):
    """
    Abstract base model with common fields and methods.

    All models should inherit from this class to get:
    - id: Primary key
    - created_at: Timestamp when record was created
    - updated_at: Timestamp when record was last modified
    - to_dict(): Convert model to dictionary
    """

    __abstract__ = True

    id = Column(Integer, primary_key=True, autoincrement=True)

    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    def to_dict(self, include_relationships: bool = False) -> Dict[str, Any]:
        """
        Convert model instance to dictionary.

        Args:
            include_relationships: If True, include related objects (default: False)

        Returns:
            Dictionary representation of the model
        """
        result = {}

        for column in self.__table__.columns:
            value = getattr(self, column.name)

            # Convert datetime to ISO format string
            if isinstance(value, datetime):
                value = value.isoformat()

            result[column.name] = value

        if include_relationships:
            for relationship in self.__mapper__.relationships:
                rel_name = relationship.key
                rel_value = getattr(self, rel_name)

                if rel_value is None:
                    result[rel_name] = None
                elif isinstance(rel_value, list):
                    result[rel_name] = [item.to_dict() for item in rel_value]
                else:
                    result[rel_name] = rel_value.to_dict()

        return result

    def update_from_dict(self, data: Dict[str, Any]) -> None:
        """
        Update model instance from dictionary.

        Only updates fields that exist in the model and are in the dictionary.

        Args:
            data: Dictionary with field names and values
        """
        for column in self.__table__.columns:
            if column.name in data and column.name not in ["id", "created_at", "updated_at"]:
                setattr(self, column.name, data[column.name])

        self.updated_at = utc_now()

    def __repr__(self) -> str:
        """
        String representation of model instance.

        Returns:
            String like "ClassName(id=1, nombre='...')"
        """
        class_name = self.__class__.__name__
        attrs = []

        if getattr(self, "id", None) is not None:
            attrs.append(f"id={self.id}")

        if getattr(self, "nombre", None) is not None:
            attrs.append(f"nombre='{self.nombre}'")

        attrs_str = ", ".join(attrs)
        return f"{class_name}({attrs_str})"
