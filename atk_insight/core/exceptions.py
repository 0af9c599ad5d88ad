class CatalogUnavailableError(RuntimeError):
    """The active item catalog could not be read, so no run was attempted."""


class LedgerDataError(ValueError):
    """A movement row for one item is malformed (bad quantity or timestamp)."""

    def __init__(self, item_id, message):
        super().__init__("item {}: {}".format(item_id, message))
        self.item_id = item_id
