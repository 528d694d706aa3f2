from .auth import User, SessionToken
from .clients import Client
from .documents import Document, DocumentLineItem, EInvoiceSyncState

__all__ = [
    'User', 'SessionToken',
    'Client',
    'Document', 'DocumentLineItem', 'EInvoiceSyncState',
]
