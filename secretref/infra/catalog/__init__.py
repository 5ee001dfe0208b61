from secretref.infra.catalog.in_memory_catalog import InMemoryConfigurationCatalog
from secretref.infra.catalog.loader import build_catalog, load_catalog_file

__all__ = [
    "InMemoryConfigurationCatalog",
    "build_catalog",
    "load_catalog_file",
]
