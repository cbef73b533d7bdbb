"""
Inventory tables (two locations per article).

Tables:
- InventoryItemRow (article, two location labels, stock + derived status per location)
- InventoryLogRow (append-only stock change history)
"""
