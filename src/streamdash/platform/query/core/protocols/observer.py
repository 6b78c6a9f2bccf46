"""Observer protocols.

ONLY subscription contracts - callback signatures used by the cache to
notify views and internal listeners.

Following maximum separation architecture - one file = one purpose.
"""

from typing import Callable

from ..entities.query_entry import QueryEntry
from ..value_objects.query_key import QueryKey

# Invoked synchronously with the new entry after every change to it
QueryObserver = Callable[[QueryEntry], None]

# Invoked with the new observer count whenever it changes
ObserverCountListener = Callable[[QueryKey, int], None]

# Returned by subscribe; calling it more than once is a no-op
Unsubscribe = Callable[[], None]
