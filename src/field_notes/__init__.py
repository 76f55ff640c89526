"""Local persistence core for the Field Notes capture app.

The capture layer (camera, microphone, GPS, UI) hands this package
already-captured bytes or file paths plus optional coordinates. It includes:

- Database models (models.py) - SQLAlchemy tables for entries, media and voice recordings
- Value types (schemas.py) - Pydantic models handed to and returned from the stores
- Stores (repositories/) - the Entry Store and the Blob Store
- Catalog service (services/catalog_service.py) - save/list/get/delete for the UI layer
- Path-list codec (utils.py) - file-path lists persisted in a single text column
"""

__version__ = '0.1.0'
