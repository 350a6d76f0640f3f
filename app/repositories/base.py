from typing import Generic, TypeVar, Type, List, Optional, Dict, Any, Union, Sequence
from slugify import slugify

import pandas as pd
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.dialects import postgresql, sqlite
from app.core.db import Base
from app.core.logger import logger
from sqlalchemy.orm import Session

T = TypeVar("T", bound=Base)


class RepositoryError(Exception):
    """Custom exception for repository operations"""
    pass


class BaseRepository(Generic[T]):
    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model

    @property
    def pk_column(self):
        return getattr(self.model, self.model.__table__.primary_key.columns.keys()[0])

    def _finish(self, commit: bool) -> None:
        if commit:
            self.db.commit()
        else:
            self.db.flush()

    def get(self, id_: Union[int, str]) -> Optional[T]:
        """Get a single record by ID"""
        try:
            return self.db.get(self.model, id_)
        except SQLAlchemyError as e:
            logger.error(f"Error getting {self.model.__name__} with id {id_}: {e}")
            raise RepositoryError(f"Failed to get {self.model.__name__}") from e

    def get_for_user(self, id_: Union[int, str], user_id: str) -> Optional[T]:
        """Get a record by ID only if it belongs to the user"""
        try:
            return (
                self.db.query(self.model)
                .filter(self.pk_column == id_, self.model.user_id == user_id)
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error getting {self.model.__name__} {id_} for user {user_id}: {e}")
            raise RepositoryError(f"Failed to get {self.model.__name__}") from e

    def read_frame(self, user_id: str) -> pd.DataFrame:
        """Load the user's rows into a DataFrame for in-memory aggregation"""
        try:
            stmt = select(self.model).where(self.model.user_id == user_id)
            return pd.read_sql(stmt, self.db.connection())
        except SQLAlchemyError as e:
            logger.error(f"Error reading {self.model.__name__} frame for user {user_id}: {e}")
            raise RepositoryError(f"Failed to read {self.model.__name__}") from e

    def create(self, obj_in: Dict[str, Any], commit: bool = True) -> T:
        """Create a new record"""
        try:
            rows = self._validate_data([obj_in])
            db_obj = self.model(**(rows[0] if rows else {}))
            self.db.add(db_obj)
            self._finish(commit)
            self.db.refresh(db_obj)
            return db_obj
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating {self.model.__name__}: {e}")
            raise RepositoryError(f"Failed to create {self.model.__name__}") from e

    def update_obj(self, db_obj: T, obj_in: Dict[str, Any], commit: bool = True) -> T:
        """Apply field values to an already loaded record"""
        try:
            for field, value in obj_in.items():
                if hasattr(db_obj, field):
                    setattr(db_obj, field, value)

            self._finish(commit)
            self.db.refresh(db_obj)
            return db_obj
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating {self.model.__name__}: {e}")
            raise RepositoryError(f"Failed to update {self.model.__name__}") from e

    def delete_for_user(self, id_: Union[int, str], user_id: str) -> bool:
        """Delete a record only if it belongs to the user"""
        try:
            deleted = (
                self.db.query(self.model)
                .filter(self.pk_column == id_, self.model.user_id == user_id)
                .delete(synchronize_session=False)
            )
            self.db.commit()
            return bool(deleted)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting {self.model.__name__} {id_} for user {user_id}: {e}")
            raise RepositoryError(f"Failed to delete {self.model.__name__}") from e

    @staticmethod
    def _snakeify(s: str) -> str:
        if not isinstance(s, str):
            return s
        s = s.strip()
        return slugify(s, separator="_", lowercase=True)

    @staticmethod
    def normalize_header(
            value: Optional[Union[str, List[str], pd.DataFrame, List[Dict[str, Any]]]]
    ) -> Optional[Union[str, List[str], pd.DataFrame, List[Dict[str, Any]]]]:
        if value is None:
            return None

        if isinstance(value, str):
            return BaseRepository._snakeify(value)

        if isinstance(value, list):
            if value and isinstance(value[0], dict):
                return [{BaseRepository._snakeify(k): v for k, v in rec.items()} for rec in value]
            return [BaseRepository._snakeify(v) for v in value]

        if isinstance(value, pd.DataFrame):
            df = value.copy()
            df.columns = [BaseRepository._snakeify(c) for c in df.columns]
            return df

        raise TypeError(
            f"Unsupported type for normalize_header: {type(value).__name__}. "
            "Expected str, list, pandas.DataFrame, or list of dictionaries."
        )

    def _validate_data(self, rows: List[Dict]) -> List[Dict]:
        """Normalizes headers and drops fields that are not columns of the repository model."""
        if not rows:
            return []

        rows = self.normalize_header(rows)
        model_columns = set(column.name for column in self.model.__table__.columns)

        validated_rows = []
        for i, row in enumerate(rows):
            if not isinstance(row, dict):
                logger.warning(f"Row {i} is not a dictionary, skipping")
                continue

            valid_row = {}
            for key, value in row.items():
                if key in model_columns:
                    valid_row[key] = value
                else:
                    logger.debug(f"Row {i}: ignoring field '{key}' not in model {self.model.__name__}")

            if valid_row:
                validated_rows.append(valid_row)
            else:
                logger.warning(f"Row {i} has no valid fields for model {self.model.__name__}")

        return validated_rows

    def _insert(self):
        if self.db.bind.dialect.name == "postgresql":
            return postgresql.insert(self.model)
        return sqlite.insert(self.model)

    def upsert(
            self,
            values: Dict[str, Any],
            index_elements: Sequence[str],
            update_fields: Optional[Sequence[str]] = None,
    ) -> int:
        """Insert a record or update the given fields when the unique key already exists."""
        try:
            rows = self._validate_data([values])
            if not rows:
                return 0
            row = rows[0]

            stmt = self._insert().values(row)
            fields = update_fields if update_fields is not None else [
                k for k in row if k not in index_elements and k != self.pk_column.key
            ]
            if fields:
                stmt = stmt.on_conflict_do_update(
                    index_elements=list(index_elements),
                    set_={f: stmt.excluded[f] for f in fields},
                )
            else:
                stmt = stmt.on_conflict_do_nothing(index_elements=list(index_elements))

            result = self.db.execute(stmt)
            self.db.commit()
            return int(result.rowcount or 0)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error upserting {self.model.__name__}: {e}")
            raise RepositoryError(f"Failed to upsert {self.model.__name__}") from e
