"""
Release source registry.
"""

from typing import Dict, List, Optional

from modsloader.exceptions import UnknownSourceError

from .interfaces import ModSource, ReleaseSource


class SourceRegistry:
    """Maps source kinds to release source strategies."""

    def __init__(self, sources: Optional[List[ReleaseSource]] = None):
        self._sources: Dict[str, ReleaseSource] = {}
        for source in sources or []:
            self.register(source)

    def register(self, source: ReleaseSource) -> None:
        self._sources[source.source_type] = source

    def get(self, source: ModSource) -> ReleaseSource:
        """
        Return the strategy for a mod's source descriptor.

        Raises:
            UnknownSourceError: If no strategy is registered for the source kind.
        """
        strategy = self._sources.get(source.type)
        if strategy is None:
            raise UnknownSourceError(source.type)
        return strategy
