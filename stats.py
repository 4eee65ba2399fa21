from collections import Counter

from sqlalchemy import func, select

from models import InventoryItem


class StatsAggregator:
    """Read-only counts over the inventory table.

    One grouped query feeds all three figures, so ``total`` always equals
    the sum of either breakdown even while writers are active. Buckets use
    the stored values verbatim: ``None`` and ``""`` are keys of their own.
    """

    def __init__(self, store):
        self.store = store

    def compute(self):
        with self.store.session_scope() as session:
            rows = session.execute(
                select(InventoryItem.status, InventoryItem.kategori, func.count(InventoryItem.id))
                .group_by(InventoryItem.status, InventoryItem.kategori)
            ).all()

        by_status = Counter()
        by_category = Counter()
        for status, kategori, count in rows:
            by_status[status] += count
            by_category[kategori] += count

        return {
            "total": sum(by_status.values()),
            "byStatus": dict(by_status),
            "byCategory": dict(by_category),
        }
