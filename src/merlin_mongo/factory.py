"""Two-stage factory used to plug the adapter into a Merlin ORM."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from .adapter import MerlinMongo
from .config import MerlinMongoOptions
from .exceptions import ValidationError

if TYPE_CHECKING:
    from .ports import HostORM

_PRIMITIVES = (str, bytes, int, float, bool)


def merlin_mongo_factory(
    opts: MerlinMongoOptions | Mapping[str, Any] | None = None,
) -> Callable[[HostORM], MerlinMongo]:
    """Return ``inner(merlin) -> MerlinMongo`` bound to *opts*.

    *opts* is only type-checked here; the options themselves are validated
    when ``inner`` builds the adapter.
    """
    if opts is None:
        opts = {}
    if not isinstance(opts, (MerlinMongoOptions, Mapping)):
        raise ValidationError({"opts": ["must be a mapping or MerlinMongoOptions"]})

    def inner(merlin: HostORM) -> MerlinMongo:
        if merlin is None or isinstance(merlin, _PRIMITIVES):
            raise ValidationError({"merlin": ["must be a Merlin ORM instance"]})
        return MerlinMongo(merlin, opts)

    return inner
