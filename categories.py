import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from errors import ConflictError, ValidationError
from models import Category

logger = logging.getLogger(__name__)


class CategoryRegistry:
    def __init__(self, store, cascade):
        self.store = store
        self.cascade = cascade

    def list(self):
        with self.store.session_scope() as session:
            return list(session.scalars(select(Category.name).order_by(Category.name)))

    def add(self, name):
        if not name:
            raise ValidationError("Category name required")

        with self.store.session_scope() as session:
            if session.scalars(select(Category).where(Category.name == name)).first():
                raise ConflictError("Category already exists")
            session.add(Category(name=name))
            try:
                session.flush()
            except IntegrityError as exc:
                raise ConflictError("Category already exists") from exc

        logger.info("Added category %r", name)

    def rename(self, old_name, new_name):
        new_name = (new_name or "").strip()
        if not new_name:
            raise ValidationError("New category name required")
        return self.cascade.rename_category(old_name, new_name)

    def remove(self, name):
        # items labeled with the removed name keep their label
        with self.store.session_scope() as session:
            deleted = session.execute(delete(Category).where(Category.name == name)).rowcount
        logger.info("Deleted category %r (%d rows)", name, deleted)
        return deleted
