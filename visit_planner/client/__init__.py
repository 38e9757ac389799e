"""Client-side state: visit store, local storage, API client and the visit form"""

from .api import ApiResponse, VisitApiClient
from .form import VisitFormController
from .storage import LocalStorage, StorageError
from .store import VisitStore

__all__ = [
    "ApiResponse",
    "LocalStorage",
    "StorageError",
    "VisitApiClient",
    "VisitFormController",
    "VisitStore",
]
