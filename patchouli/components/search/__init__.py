"""Search component - keyword and AI-assisted search over published posts."""

from patchouli.components.search.component import SearchComponent
from patchouli.components.search.models import SearchInput, SearchOutput
from patchouli.components.search.ports import PostSearchPort, TranslatorPort

__all__ = [
    # Component
    "SearchComponent",
    # Models
    "SearchInput",
    "SearchOutput",
    # Ports
    "PostSearchPort",
    "TranslatorPort",
]
