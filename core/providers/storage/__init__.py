"""Final-video storage backends"""

from .local import LocalStorageProvider
from .remote import HttpStorageProvider

__all__ = ["LocalStorageProvider", "HttpStorageProvider"]
