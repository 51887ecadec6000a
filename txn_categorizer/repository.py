"""Generic CRUD repository shared by every entity route.

One ``CrudRepository`` is instantiated per ORM model. It owns pagination
clamping, not-found handling and the translation of ``IntegrityError`` into
400 responses, so the routes only build filters and payloads.
"""

import logging
from typing import Any, Dict, Generic, Iterable, List, Optional, Sequence, Type, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .database import Base, Category, Feedback, Prediction, Transaction, User
from .errors import BadRequestError, NotFoundError

logger = logging.getLogger("txn_categorizer.repository")

MAX_PAGE_SIZE = 100

ModelT = TypeVar("ModelT", bound=Base)


def clamp_limit(limit: Optional[int], default: int) -> int:
    if limit is None:
        limit = default
    return max(0, min(limit, MAX_PAGE_SIZE))


def clamp_offset(offset: Optional[int]) -> int:
    return max(0, offset or 0)


def is_unique_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    return "unique" in message or "duplicate key" in message


def is_foreign_key_violation(exc: IntegrityError) -> bool:
    return "foreign key" in str(exc.orig).lower()


class CrudRepository(Generic[ModelT]):
    def __init__(
        self,
        model: Type[ModelT],
        label: str,
        default_limit: int = 50,
        duplicate_code: str = "DUPLICATE",
        duplicate_message: Optional[str] = None,
        foreign_key_message: Optional[str] = None,
        not_found_code: str = "NOT_FOUND",
    ):
        self.model = model
        self.label = label
        self.default_limit = default_limit
        self.duplicate_code = duplicate_code
        self.duplicate_message = duplicate_message or f"{label} already exists"
        self.foreign_key_message = foreign_key_message or f"{label} references a record that does not exist"
        self.not_found_code = not_found_code

    # -- reads -----------------------------------------------------------

    def list(
        self,
        db: Session,
        filters: Sequence[Any] = (),
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[ModelT]:
        query = db.query(self.model)
        if filters:
            query = query.filter(*filters)
        return (
            query.order_by(self.model.id)
            .limit(clamp_limit(limit, self.default_limit))
            .offset(clamp_offset(offset))
            .all()
        )

    def find(self, db: Session, item_id: int) -> Optional[ModelT]:
        return db.query(self.model).filter(self.model.id == item_id).first()

    def get(self, db: Session, item_id: int) -> ModelT:
        item = self.find(db, item_id)
        if item is None:
            raise NotFoundError(f"{self.label} not found", self.not_found_code)
        return item

    # -- writes ----------------------------------------------------------

    def create(self, db: Session, values: Dict[str, Any]) -> ModelT:
        item = self.model(**values)
        db.add(item)
        self._commit(db, "create")
        db.refresh(item)
        return item

    def create_many(self, db: Session, rows: Iterable[Dict[str, Any]]) -> List[ModelT]:
        items = [self.model(**row) for row in rows]
        db.add_all(items)
        self._commit(db, "bulk create")
        for item in items:
            db.refresh(item)
        return items

    def update(self, db: Session, item_id: int, values: Dict[str, Any]) -> ModelT:
        item = self.get(db, item_id)
        if not values:
            raise BadRequestError("No valid fields provided for update", "NO_UPDATES")
        for key, value in values.items():
            setattr(item, key, value)
        self._commit(db, "update")
        db.refresh(item)
        return item

    def delete(self, db: Session, item_id: int) -> Dict[str, Any]:
        item = self.get(db, item_id)
        db.delete(item)
        self._commit(db, "delete")
        return {"success": True, "message": f"{self.label} deleted successfully"}

    def _commit(self, db: Session, action: str) -> None:
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            logger.info("%s %s rejected: %s", self.label, action, exc.orig)
            if is_foreign_key_violation(exc):
                if action == "delete":
                    raise BadRequestError(
                        f"Cannot delete {self.label.lower()}. It is referenced by other records",
                        "FOREIGN_KEY_CONSTRAINT",
                    ) from exc
                raise BadRequestError(self.foreign_key_message, "FOREIGN_KEY_CONSTRAINT") from exc
            if is_unique_violation(exc):
                raise BadRequestError(self.duplicate_message, self.duplicate_code) from exc
            raise BadRequestError(f"Integrity error: {exc.orig}", "CONSTRAINT_VIOLATION") from exc


users = CrudRepository(
    User,
    "User",
    default_limit=10,
    duplicate_code="DUPLICATE_EMAIL",
    duplicate_message="Email already exists",
    not_found_code="USER_NOT_FOUND",
)
categories = CrudRepository(
    Category,
    "Category",
    default_limit=100,
    duplicate_code="DUPLICATE_NAME",
    duplicate_message="Category name already exists",
    foreign_key_message="Invalid user_id: User does not exist",
)
transactions = CrudRepository(
    Transaction,
    "Transaction",
    foreign_key_message="Invalid user_id: User does not exist",
)
predictions = CrudRepository(
    Prediction,
    "Prediction",
    foreign_key_message="Invalid transaction_id or category_id - referenced record does not exist",
)
feedback = CrudRepository(
    Feedback,
    "Feedback",
    foreign_key_message=(
        "Invalid reference: transaction_id, prediction_id, original_category_id, "
        "corrected_category_id, or user_id does not exist"
    ),
)
