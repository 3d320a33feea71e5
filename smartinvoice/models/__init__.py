from smartinvoice.models.storage_entry import StorageEntry

__all__ = ["StorageEntry"]
