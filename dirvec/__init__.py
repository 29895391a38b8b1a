"""
dirvec Directory Sync
=====================

Synchronizes directory users into a MongoDB Atlas collection with OpenAI
embeddings and answers similarity queries over them.

Source code organization:
- core/       - Exceptions, shared types, event sink
- ingestion/  - Directory listing and field mapping
- storage/    - MongoDB connection handling
- utils/      - Shared utilities (config, logging, retry)
- vectors/    - Projection, embeddings, index provisioning, upsert, search
"""

__version__ = "0.1.0"
