"""External data source integrations.

Each subdirectory is one data source with a consistent structure:

    datasources/{name}/
    ├── __init__.py       # Public API re-exports
    ├── client.py         # API URLs, constants, retry and rate limiting
    └── {feature}.py      # Fetch functions (one per endpoint/concept)

Currently only ``inaturalist/`` exists.  Fetch functions take a client
instance rather than reaching for a module-level one, so flows decide the
client's lifetime and tests can substitute a fake.
"""
