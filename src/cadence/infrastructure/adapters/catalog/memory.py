from collections.abc import Iterable

from cadence.domain.review.models import CatalogItem
from cadence.domain.review.ports import ItemCatalog


class InMemoryItemCatalog(ItemCatalog):
    """
    ItemCatalog over items handed in by the caller.

    Embedding services usually wrap their own card table instead; this
    adapter covers tests and file-seeded deployments.
    """

    def __init__(self, items: Iterable[CatalogItem] = ()):
        self._items: dict[str, CatalogItem] = {item.item_id: item for item in items}

    def __len__(self) -> int:
        return len(self._items)

    def add(self, item: CatalogItem) -> None:
        self._items[item.item_id] = item

    async def get(self, item_id: str) -> CatalogItem | None:
        return self._items.get(item_id)

    async def get_many(self, item_ids: Iterable[str]) -> dict[str, CatalogItem]:
        return {i: self._items[i] for i in item_ids if i in self._items}
