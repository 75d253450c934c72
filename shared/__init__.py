"""
Shared module for common utilities used by the REST API and the CLI.

STRUCTURE:
- shared.config: Configuration
  - settings.py: Environment config (Pydantic)
  - logging.py: Structured logging
  - constants.py: Statuses, collection names, limits

- shared.infrastructure: Store clients
  - db.py: SQLAlchemy engine/sessions, transaction()
  - mongo.py: MongoClient, indexes, collection reset
  - correlation.py: Request correlation IDs

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging
  - validators.py: Date parsing, limits
  - money.py: Cents arithmetic and money strings
  - schemas.py: Shared Pydantic schemas
  - health.py: Health check helpers

IMPORT EXAMPLES:
    from shared.infrastructure.db import get_db, transaction
    from shared.config.settings import settings
    from shared.config.constants import OrderStatus, DeliveryStatus
    from shared.utils.exceptions import NotFoundError, ConflictError
"""
