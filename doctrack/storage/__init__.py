"""Transactional storage layer.

Importing this package registers every model on ``Base.metadata``.
"""

from doctrack.storage.auth_session import AuthSession
from doctrack.storage.base import Base
from doctrack.storage.batch import Barcode, Batch
from doctrack.storage.category import Category
from doctrack.storage.document import Document
from doctrack.storage.invitation import Invitation
from doctrack.storage.office import Office
from doctrack.storage.pending import Pending
from doctrack.storage.staff import Staff
from doctrack.storage.subscription import DocumentSubscription, Subscription
from doctrack.storage.user import User

__all__ = [
    'AuthSession',
    'Barcode',
    'Base',
    'Batch',
    'Category',
    'Document',
    'DocumentSubscription',
    'Invitation',
    'Office',
    'Pending',
    'Staff',
    'Subscription',
    'User',
]
