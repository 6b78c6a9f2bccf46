"""Mutation descriptor command.

ONLY write descriptions - declares the payload, the transport write, the
optimistic update and the invalidation targets of one mutation.

Following maximum separation architecture - one file = one purpose.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ...core.exceptions.validation_error import ValidationError
from ...core.protocols.transport import Transport
from ...core.value_objects.query_key import KeyLike, QueryKey

MutationFunction = Callable[[Transport, Dict[str, Any]], Awaitable[Any]]

# Pure function: (current cached data, payload) -> provisional data
OptimisticUpdate = Callable[[Any, Dict[str, Any]], Any]

# Maps a server result to canonical data per key
CanonicalUpdate = Callable[[Any], Mapping[KeyLike, Any]]


@dataclass
class MutationDescriptor:
    """Data required to run one mutation.

    invalidate defaults to target_keys when not given, so every optimistic
    write is reconciled by a refetch after settlement.
    """

    mutation_fn: MutationFunction
    payload: Mapping[str, Any] = field(default_factory=dict)
    target_keys: Sequence[KeyLike] = ()
    optimistic_update: Optional[OptimisticUpdate] = None
    invalidate: Optional[Sequence[KeyLike]] = None
    remove_on_success: Sequence[KeyLike] = ()
    canonical_update: Optional[CanonicalUpdate] = None
    payload_model: Optional[Type[BaseModel]] = None
    name: str = "mutation"

    # Optional lifecycle hooks
    on_success: Optional[Callable[[Any, Dict[str, Any]], None]] = None
    on_error: Optional[Callable[[BaseException, Dict[str, Any]], None]] = None
    on_settled: Optional[Callable[[Any, Optional[BaseException], Dict[str, Any]], None]] = None

    @classmethod
    def request(
        cls,
        method: str,
        path: str,
        payload: Optional[Mapping[str, Any]] = None,
        **kwargs: Any
    ) -> "MutationDescriptor":
        """Create descriptor whose write is a single transport call with the payload as body."""

        async def mutation_fn(transport: Transport, body: Dict[str, Any]) -> Any:
            return await transport.call(method, path, body)

        return cls(mutation_fn=mutation_fn, payload=payload or {}, **kwargs)

    def prepare(self) -> "PreparedMutation":
        """Validate descriptor and payload.

        Raises:
            ValidationError: If the descriptor or its payload is malformed
        """
        if not callable(self.mutation_fn):
            raise ValidationError("Mutation descriptor requires a callable mutation_fn", field="mutation_fn")

        if not isinstance(self.payload, Mapping):
            raise ValidationError("Mutation payload must be a mapping", field="payload")

        target_keys = _coerce_keys(self.target_keys, "target_keys")
        remove_keys = _coerce_keys(self.remove_on_success, "remove_on_success")
        if self.invalidate is None:
            invalidate_keys = target_keys
        else:
            invalidate_keys = _coerce_keys(self.invalidate, "invalidate")

        if self.optimistic_update is not None:
            if not callable(self.optimistic_update):
                raise ValidationError("optimistic_update must be callable", field="optimistic_update")
            if not target_keys:
                raise ValidationError("optimistic_update requires target_keys", field="target_keys")

        payload = dict(self.payload)
        if self.payload_model is not None:
            try:
                model = self.payload_model.model_validate(payload)
            except PydanticValidationError as e:
                raise ValidationError.from_pydantic(e) from e
            payload = model.model_dump(by_alias=True, exclude_none=True)

        return PreparedMutation(
            descriptor=self,
            payload=payload,
            target_keys=target_keys,
            invalidate_keys=invalidate_keys,
            remove_keys=remove_keys,
        )


@dataclass(frozen=True)
class PreparedMutation:
    """Validated mutation ready for execution."""

    descriptor: MutationDescriptor
    payload: Dict[str, Any]
    target_keys: Tuple[QueryKey, ...]
    invalidate_keys: Tuple[QueryKey, ...]
    remove_keys: Tuple[QueryKey, ...]


@dataclass
class BulkMutationResult:
    """Aggregate outcome of concurrently issued mutations."""

    total: int
    results: List[Any] = field(default_factory=list)
    errors: Dict[int, BaseException] = field(default_factory=dict)

    @property
    def failed(self) -> int:
        """Number of mutations that failed."""
        return len(self.errors)

    @property
    def succeeded(self) -> int:
        """Number of mutations that succeeded."""
        return self.total - self.failed

    @property
    def all_succeeded(self) -> bool:
        """Check if every mutation succeeded."""
        return not self.errors

    def summary(self, noun: str = "mutations", verb: str = "completed") -> str:
        """Human readable outcome such as "2 streams could not be deleted"."""
        if self.all_succeeded:
            return f"All {self.total} {noun} {verb}."
        return f"{self.failed} {noun} could not be {verb}."


def _coerce_keys(keys: Sequence[KeyLike], field_name: str) -> Tuple[QueryKey, ...]:
    """Coerce key-likes, raising ValidationError on malformed keys."""
    if isinstance(keys, (str, QueryKey)):
        raise ValidationError(f"{field_name} must be a sequence of keys", field=field_name)

    coerced: List[QueryKey] = []
    for key in keys:
        try:
            query_key = QueryKey.coerce(key)
        except ValueError as e:
            raise ValidationError(f"Invalid key in {field_name}: {e}", field=field_name) from e
        if query_key not in coerced:
            coerced.append(query_key)
    return tuple(coerced)
