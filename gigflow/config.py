"""Configuration for the GigFlow marketplace core."""

from dataclasses import dataclass


@dataclass
class MarketplaceConfig:
    """Tunables shared by the marketplace services.

    Attributes:
        transaction_timeout: Seconds a transaction may wait for the store
            write lock before failing with TransactionTimeoutError.
        inbox_limit: Default number of notifications returned by an inbox listing.
        max_inbox_limit: Upper bound applied to caller-supplied inbox limits.
        page_size: Default page size for gig listings.
        max_page_size: Upper bound for gig listing page sizes.
    """

    transaction_timeout: float = 5.0
    inbox_limit: int = 50
    max_inbox_limit: int = 100
    page_size: int = 10
    max_page_size: int = 100

    def __post_init__(self):
        if self.transaction_timeout <= 0:
            raise ValueError("transaction_timeout must be positive")
        if self.inbox_limit < 1 or self.max_inbox_limit < self.inbox_limit:
            raise ValueError("inbox limits must satisfy 1 <= inbox_limit <= max_inbox_limit")
        if self.page_size < 1 or self.max_page_size < self.page_size:
            raise ValueError("page sizes must satisfy 1 <= page_size <= max_page_size")
