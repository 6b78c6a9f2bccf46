"""Query key value object.

ONLY key identity - immutable, canonical identifier of a cached query with
deep-equality semantics and prefix matching for invalidation.

Following maximum separation architecture - one file = one purpose.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Tuple, Union


SCALAR_TYPES = (str, int, float, bool, type(None))


def _freeze_segment(segment: Any) -> Any:
    """Convert a key segment into its hashable canonical form.

    Scalars are kept as-is, sequences become tuples and mappings become
    frozensets of (key, value) pairs, so two segments are equal iff their
    structures are deep-equal.
    """
    if isinstance(segment, SCALAR_TYPES):
        return segment

    if isinstance(segment, (list, tuple)):
        return tuple(_freeze_segment(item) for item in segment)

    if isinstance(segment, dict):
        frozen_items = []
        for name, value in segment.items():
            if not isinstance(name, str):
                raise ValueError("Query key mapping segments must use string keys")
            frozen_items.append((name, _freeze_segment(value)))
        return frozenset(frozen_items)

    if isinstance(segment, frozenset):
        return segment

    raise ValueError(
        f"Unsupported query key segment type: {type(segment).__name__}. "
        "Only scalars, sequences and string-keyed mappings are allowed"
    )


@dataclass(frozen=True)
class QueryKey:
    """Query key value object.

    Ordered, finite sequence of segments used as an exact-match cache key.

    Features:
    - Deep equality over scalar and small-structured segments
    - Hashable canonical form (usable as dict key)
    - Prefix matching over the leading segments for invalidation
    - Coercion from lists, tuples and bare strings
    """

    segments: Tuple[Any, ...]

    def __post_init__(self):
        """Validate and canonicalize segments on creation."""
        if not isinstance(self.segments, tuple):
            raise ValueError("Query key segments must be a tuple")

        if not self.segments:
            raise ValueError("Query key cannot be empty")

        object.__setattr__(
            self, "segments", tuple(_freeze_segment(segment) for segment in self.segments)
        )

    @classmethod
    def of(cls, *segments: Any) -> "QueryKey":
        """Create query key from segments."""
        return cls(tuple(segments))

    @classmethod
    def coerce(cls, value: Union["QueryKey", str, Iterable[Any]]) -> "QueryKey":
        """Create query key from a key, a bare string or a segment sequence."""
        if isinstance(value, QueryKey):
            return value

        if isinstance(value, str):
            return cls((value,))

        if isinstance(value, (list, tuple)):
            return cls(tuple(value))

        raise ValueError(f"Cannot build a query key from {type(value).__name__}")

    def starts_with(self, prefix: "QueryKey") -> bool:
        """Check if this key equals prefix or extends it."""
        length = len(prefix.segments)
        if length > len(self.segments):
            return False
        return self.segments[:length] == prefix.segments

    def matches(self, target: "QueryKey") -> bool:
        """Check if key is targeted by an invalidation key or prefix."""
        return self.starts_with(target)

    @property
    def root(self) -> Any:
        """First segment, usually the resource name."""
        return self.segments[0]

    def get_depth(self) -> int:
        """Get number of segments."""
        return len(self.segments)

    def to_list(self) -> list:
        """Get segments as a list."""
        return list(self.segments)

    def __len__(self) -> int:
        return len(self.segments)

    def __str__(self) -> str:
        """String representation."""
        return "[" + ", ".join(repr(segment) for segment in self.segments) + "]"


KeyLike = Union[QueryKey, str, Tuple[Any, ...], list]
