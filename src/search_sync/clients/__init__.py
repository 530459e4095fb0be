"""Client wrappers for external services.

- Qdrant: the search index store
- Firestore: the source document database
- NATS: JetStream change events and reindex tasks
- NATS PubSub: processing-state reports
- Transform: optional HTTP record transform
"""

from search_sync.clients.firestore import FirestoreDatabase, FirestoreDocument
from search_sync.clients.nats import NatsClient, NatsClientConfig
from search_sync.clients.nats_pubsub import NatsPubSubPublisher, ProcessingStateUpdate
from search_sync.clients.qdrant import QdrantClientWrapper, QdrantIndex, QdrantIndexClient
from search_sync.clients.transform import TransformClient

__all__ = [
    "FirestoreDatabase",
    "FirestoreDocument",
    "NatsClient",
    "NatsClientConfig",
    "NatsPubSubPublisher",
    "ProcessingStateUpdate",
    "QdrantClientWrapper",
    "QdrantIndex",
    "QdrantIndexClient",
    "TransformClient",
]
