"""Query definition command.

ONLY read definitions - binds a query key to the function that fetches its
data through the transport and to its per-query options.

Following maximum separation architecture - one file = one purpose.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from ...core.protocols.transport import Transport
from ...core.value_objects.query_key import KeyLike, QueryKey
from ...core.value_objects.query_options import QueryOptions

FetchFunction = Callable[[Transport], Awaitable[Any]]


@dataclass(frozen=True)
class QueryDefinition:
    """Definition of one fetchable unit of server state."""

    key: QueryKey
    fetch: FetchFunction
    options: Optional[QueryOptions] = field(default=None)

    def __post_init__(self):
        """Coerce key and validate fetch function."""
        object.__setattr__(self, "key", QueryKey.coerce(self.key))
        if not callable(self.fetch):
            raise ValueError("Query definition requires a callable fetch function")

    @classmethod
    def request(
        cls,
        key: KeyLike,
        path: str,
        method: str = "GET",
        body: Optional[Any] = None,
        options: Optional[QueryOptions] = None
    ) -> "QueryDefinition":
        """Create definition that performs a single transport call."""

        async def fetch(transport: Transport) -> Any:
            return await transport.call(method, path, body)

        return cls(key=QueryKey.coerce(key), fetch=fetch, options=options)

    def resolve_options(self, defaults: QueryOptions) -> QueryOptions:
        """Get own options, falling back to client defaults."""
        return self.options or defaults
