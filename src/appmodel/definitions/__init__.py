"""
YAML AppHost definitions.
"""

from .dir_loader import collect_definition_sources, load_definitions_from_sources, merge_definitions
from .loader import DefinitionLoader, load_application

__all__ = [
    "DefinitionLoader",
    "collect_definition_sources",
    "load_application",
    "load_definitions_from_sources",
    "merge_definitions",
]
