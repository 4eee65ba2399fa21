"""Inventory catalog.

Display numbers (``no``) are ``max(no) + 1`` at insert time. The read of the
current max and the insert run in one transaction that first writes the
``inventory_counter`` row, so concurrent writers (threads or separate
service instances) queue on that row lock instead of reading the same max.
Deleting an item never renumbers the rest.
"""

import logging

from sqlalchemy import func, select, update

from errors import NotFoundError, ValidationError
from models import INVENTORY_COUNTER, ITEM_FIELDS, InventoryCounter, InventoryItem

logger = logging.getLogger(__name__)


def _clean_fields(fields):
    values = {name: fields.get(name) for name in ITEM_FIELDS}
    if not values["nama"] or not values["kategori"]:
        raise ValidationError("Nama and kategori required")
    return values


class InventoryCatalog:
    def __init__(self, store):
        self.store = store

    def list(self):
        with self.store.session_scope() as session:
            return list(
                session.scalars(select(InventoryItem).order_by(InventoryItem.no, InventoryItem.id))
            )

    def add(self, fields, created_by):
        values = _clean_fields(fields)

        with self.store.session_scope() as session:
            self._lock_counter(session)
            max_no = session.scalar(select(func.coalesce(func.max(InventoryItem.no), 0)))
            next_no = max_no + 1

            item = InventoryItem(no=next_no, created_by=created_by, **values)
            session.add(item)
            session.execute(
                update(InventoryCounter)
                .where(InventoryCounter.name == INVENTORY_COUNTER)
                .values(last_no=next_no)
                .execution_options(synchronize_session=False)
            )
            session.flush()
            item_id = item.id

        logger.info("Added item %r as no=%d (id=%d)", values["nama"], next_no, item_id)
        return item_id, next_no

    def _lock_counter(self, session):
        # must be the first statement of the transaction so SQLite takes its
        # write lock before any read, and MySQL/PostgreSQL hold the row lock
        locked = session.execute(
            update(InventoryCounter)
            .where(InventoryCounter.name == INVENTORY_COUNTER)
            .values(last_no=InventoryCounter.last_no + 1)
            .execution_options(synchronize_session=False)
        ).rowcount
        if not locked:
            session.add(InventoryCounter(name=INVENTORY_COUNTER, last_no=0))
            session.flush()

    def update(self, item_id, fields):
        values = _clean_fields(fields)

        with self.store.session_scope() as session:
            item = session.get(InventoryItem, item_id)
            if item is None:
                raise NotFoundError("Item not found")
            for name, value in values.items():
                setattr(item, name, value)

        logger.info("Updated item id=%s", item_id)

    def remove(self, item_id):
        with self.store.session_scope() as session:
            item = session.get(InventoryItem, item_id)
            if item is None:
                raise NotFoundError("Item not found")
            session.delete(item)

        logger.info("Deleted item id=%s", item_id)
