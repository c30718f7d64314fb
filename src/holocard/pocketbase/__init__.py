from holocard.pocketbase.client import PocketBaseClient, PocketBaseError

__all__ = ["PocketBaseClient", "PocketBaseError"]
