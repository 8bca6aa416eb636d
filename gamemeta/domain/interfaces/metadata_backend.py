"""Interface for metadata backends.

One implementation per MetadataSource. The query client owns pacing and
retries; a backend only performs a single dispatch.
"""

import abc
from typing import List

from gamemeta.domain.models.common import Endpoint, QueryBody, RawRecord


class MetadataBackend(abc.ABC):
    """Abstract Base Class for a queryable metadata service."""

    @abc.abstractmethod
    def query(self, endpoint: Endpoint, query_body: QueryBody) -> List[RawRecord]:
        """Performs exactly one query against the backend.

        Args:
            endpoint: The API endpoint segment (e.g. 'games').
            query_body: The full query expression, already terminated with ';'.

        Returns:
            The decoded records.

        Raises:
            RateLimitRejected: If the backend refuses the call due to rate limiting.
            BackendError: For any other failure.
        """
        pass

    def close(self) -> None:
        """Releases network resources. Optional."""
        pass
