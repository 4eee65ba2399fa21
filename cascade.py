"""Category rename across the registry and the item labels that copy it."""

import logging
from dataclasses import dataclass

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from errors import ConflictError
from models import Category, InventoryItem

logger = logging.getLogger(__name__)


@dataclass
class CascadeResult:
    categories_renamed: int
    items_relabeled: int


class CascadeCoordinator:
    def __init__(self, store):
        self.store = store

    def rename_category(self, old_name, new_name):
        """Rename ``old_name`` to ``new_name`` in one transaction.

        Both the registry row and every item labeled ``old_name`` move
        together; if either write fails the scope rolls back and neither is
        visible. Items are relabeled even when ``old_name`` is not in the
        registry, which is how orphaned labels get repaired.
        """
        with self.store.session_scope() as session:
            try:
                renamed = session.execute(
                    update(Category)
                    .where(Category.name == old_name)
                    .values(name=new_name)
                ).rowcount
            except IntegrityError as exc:
                raise ConflictError(f"Category '{new_name}' already exists") from exc

            relabeled = session.execute(
                update(InventoryItem)
                .where(InventoryItem.kategori == old_name)
                .values(kategori=new_name)
            ).rowcount

        logger.info(
            "Renamed category %r -> %r (%d registry rows, %d items)",
            old_name,
            new_name,
            renamed,
            relabeled,
        )
        return CascadeResult(categories_renamed=renamed, items_relabeled=relabeled)
