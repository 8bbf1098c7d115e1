# Infrastructure Catalog Adapters Package
from .memory import InMemoryItemCatalog
from .yaml_catalog import load_yaml_catalog, parse_catalog

__all__ = ["InMemoryItemCatalog", "load_yaml_catalog", "parse_catalog"]
